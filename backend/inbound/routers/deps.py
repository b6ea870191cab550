"""Request-scoped dependencies shared by the routers."""
from fastapi import Request

from inbound.core.database import engine
from inbound.services.store import SqlRecordStore
from inbound.services.vas_tasks import VasTaskBoard


def get_store() -> SqlRecordStore:  # dependency
    return SqlRecordStore(engine)


def get_vas_board(request: Request) -> VasTaskBoard:  # dependency
    board = getattr(request.app.state, "vas_tasks", None)
    if board is None:
        board = request.app.state.vas_tasks = VasTaskBoard()
    return board
