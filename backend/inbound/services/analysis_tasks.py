"""
Celery background job for the dashboard.

The computation itself lives in :mod:`inbound.services.metrics`; this task
only loads the three logs through :func:`inbound.services.store.open_store`
(remote with local cache when ``INBOUND_REMOTE_URL`` is set) and times it.

Exposed task:
* ``analysis.dashboard`` – full dashboard report as JSON.
"""

from __future__ import annotations

import datetime as _dt
import logging
import time

from celery import shared_task

from inbound.services.metrics import build_dashboard
from inbound.services.store import open_store

logger = logging.getLogger(__name__)


@shared_task(name="analysis.dashboard")
def dashboard_report() -> dict:
    start = time.perf_counter()
    store = open_store()
    try:
        arrivals = store.list("arrivals")
        transactions = store.list("transactions")
        vas = store.list("vas")
        source = getattr(store, "backend", "sql")
    finally:
        # one engine / http client per run; release them before returning
        store.close()
    report = build_dashboard(arrivals, transactions, vas)
    elapsed = round(time.perf_counter() - start, 3)
    logger.info("dashboard_report: arrivals=%d transactions=%d vas=%d elapsed=%.3fs",
                len(arrivals), len(transactions), len(vas), elapsed)
    return {
        "report": report,
        "source": source,
        "elapsed_sec": elapsed,
        "run_at": _dt.datetime.now(_dt.timezone.utc).isoformat(),
    }
