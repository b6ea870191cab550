"""
file_parser.py
==============

Robust conversion of uploaded **CSV / Excel** files into a
``pandas.DataFrame``.

* file kind decided from MIME type & extension
* CSV encoding guessed with **chardet**, then common fallbacks in order
* delimiter sniffed; comma / tab / semicolon / pipe retried when the sniff
  collapses everything into one column
* header labels cleaned (NFKC, BOM, surrounding whitespace)
* every value read as **string** (``dtype=str``, ``keep_default_na=False``)
* empty or unsupported files raise ``ValueError``

Accepts a FastAPI ``UploadFile``, a ``Path`` / ``str`` or raw ``bytes`` so the
same call works from the API and from tests.
"""

from __future__ import annotations

import csv
import io
import mimetypes
import unicodedata
from pathlib import Path
from typing import Final, Iterable

import chardet
import pandas as pd
from fastapi import UploadFile


ENCODINGS: Final[list[str]] = [
    "utf-8",
    "utf-8-sig",
    "utf-16",
    "utf-16-le",
    "utf-16-be",
    "cp1252",
    "iso8859-1",
]

_ALT_SEPARATORS: Final[tuple[str, ...]] = ("\t", ";", "|")


# --------------------------------------------------------------------------- #
# public API                                                                  #
# --------------------------------------------------------------------------- #
def read_dataframe(file: UploadFile | str | Path | bytes | bytearray) -> pd.DataFrame:
    """
    Parameters
    ----------
    file :
        * **FastAPI UploadFile** – multipart upload
        * **str / Path** – file on disk
        * **bytes / bytearray** – in-memory content (treated as CSV)

    Returns
    -------
    pandas.DataFrame
        First row is the header; all cells are strings.

    Raises
    ------
    ValueError
        - empty file / no data rows
        - unsupported file type
        - undecodable CSV
    """
    raw, filename = _get_raw_and_name(file)

    if not raw:
        raise ValueError("File is empty")

    mime, _ = mimetypes.guess_type(filename)
    lower_name = filename.lower()

    # ----------------------------- Excel ----------------------------------
    if lower_name.endswith((".xlsx", ".xls")):
        df = pd.read_excel(io.BytesIO(raw), dtype=str, keep_default_na=False)

    # ----------------------------- CSV ------------------------------------
    elif mime in ("text/csv", "text/plain", None) or lower_name.endswith(".csv"):
        df = _read_csv(raw)

    else:
        raise ValueError("Unsupported file type (only .csv/.xlsx/.xls accepted)")

    # ---------------------- column normalisation --------------------------
    df.columns = (
        df.columns.astype(str)
        .map(lambda s: unicodedata.normalize("NFKC", s))
        .str.replace("\ufeff", "", regex=False)   # strip BOM
        .str.strip()
    )

    if df.empty:
        raise ValueError("File has no data rows")

    return df


__all__ = ["read_dataframe"]


# --------------------------------------------------------------------------- #
# helpers (private)                                                           #
# --------------------------------------------------------------------------- #
def _read_csv(raw: bytes) -> pd.DataFrame:
    # Many NUL bytes in the first KB → probably UTF-16
    might_be_utf16 = b"\x00" in raw[:1024]
    enc_guess: str = (chardet.detect(raw[:4096]).get("encoding") or "").lower()

    enc_try_order = (
        ["utf-16", "utf-16-le", "utf-16-be"] if might_be_utf16 else []
    ) + [enc_guess] + ENCODINGS

    for enc in _unique(e for e in enc_try_order if e):
        try:
            # csv.Sniffer does not cope with UTF-16, force comma there
            sep_param = None if enc.startswith("utf-8") else ","
            df = pd.read_csv(
                io.BytesIO(raw),
                encoding=enc,
                dtype=str,
                keep_default_na=False,
                sep=sep_param,
                engine="python",
            )
        except UnicodeDecodeError:
            continue
        except csv.Error:
            # sniffer gave up (single column, odd quoting)
            return _retry_separators(raw, enc, None)
        except pd.errors.ParserError as e:
            raise ValueError(f"Cannot parse CSV: {e}") from e
        except pd.errors.EmptyDataError as e:
            raise ValueError("File has no data rows") from e

        if df.shape[1] == 1:
            df = _retry_separators(raw, enc, df)
        return df

    raise ValueError("Cannot decode CSV – unknown encoding")


def _retry_separators(raw: bytes, enc: str, df: pd.DataFrame | None) -> pd.DataFrame:
    """Sniffer picked a single column (or failed); try the usual explicit delimiters."""
    for sep in (",",) + _ALT_SEPARATORS:
        try:
            df_alt = pd.read_csv(
                io.BytesIO(raw), encoding=enc, dtype=str, keep_default_na=False, sep=sep
            )
        except (UnicodeDecodeError, pd.errors.ParserError):
            continue
        if df_alt.shape[1] > 1:
            return df_alt
        if df is None:
            df = df_alt
    if df is None:
        raise ValueError("Cannot parse CSV: delimiter not detected")
    return df


def _get_raw_and_name(
    file: UploadFile | str | Path | bytes | bytearray,
) -> tuple[bytes, str]:
    """Convert the accepted inputs into raw bytes + filename."""
    if isinstance(file, (bytes, bytearray)):
        return bytes(file), ""

    if isinstance(file, (str, Path)):
        p = Path(file)
        return p.read_bytes(), p.name

    if isinstance(file, UploadFile) or (hasattr(file, "file") and hasattr(file, "filename")):
        return file.file.read(), file.filename or ""

    raise TypeError(
        "file must be UploadFile | str | Path | bytes | bytearray; "
        f"got {type(file)}"
    )


def _unique(seq: Iterable[str]) -> list[str]:
    """De-duplicate, keeping order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in seq:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out
