"""Tolerant cell normalizers for values read out of the ledger spreadsheet.

Spreadsheet cells arrive as whatever the sheet happens to hold: formatted
Vietnamese numbers (``"10.000.000"``), gviz date literals
(``"Date(2024,2,5)"``), ISO strings, or real ``datetime`` objects when the
workbook is read through :mod:`openpyxl`. None of the helpers here raise;
malformed cells degrade to ``0`` or to their original text so a single bad
row never aborts a whole reduction.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any, Optional

from . import log


_GVIZ_DATE = re.compile(r"Date\(")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ][\d:.]+)?$")
_DMY_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DIGITS = re.compile(r"\d+")


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def normalize_key(code: Optional[str], name: Optional[str]) -> str:
    """Return the item identity used by every inventory lookup.

    The trimmed item code wins when present, otherwise the trimmed item name.
    The result is lower-cased so cells typed with different casing collide.
    An empty string means the row has no identity and must not be stored.
    """

    return (_text(code) or _text(name)).lower()


def parse_locale_number(raw: Any) -> float:
    """Parse a spreadsheet number written with Vietnamese separators.

    Commas are dropped first, then dots, so ``"10.000.000"`` and
    ``"1,500"`` both read as whole numbers. Numeric cells pass through.
    Empty, unparseable or non-finite input yields ``0.0``.
    """

    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else 0.0

    cleaned = str(raw).strip().replace(",", "").replace(".", "")
    if not cleaned:
        return 0.0
    try:
        value = float(cleaned)
    except ValueError:
        log.debug("Unparseable number cell %r treated as 0", raw)
        return 0.0
    return value if math.isfinite(value) else 0.0


def format_locale_number(value: Optional[float]) -> str:
    """Render a number with dot thousands separators; zero renders empty."""

    if not value:
        return ""
    rounded = int(math.floor(abs(value) + 0.5))
    sign = "-" if value < 0 else ""
    return sign + f"{rounded:,}".replace(",", ".")


def parse_sheet_date(raw: Any) -> str:
    """Normalize a date cell into ``DD/MM/YYYY`` display form.

    Recognized shapes are gviz literals such as ``Date(2024,2,5)`` (the month
    is zero based), ISO ``YYYY-MM-DD`` with an optional time part,
    ``D/M/YYYY`` and ``date``/``datetime`` objects. Anything else is handed
    back unchanged so suspicious data stays visible.
    """

    if raw is None:
        return ""
    if isinstance(raw, (datetime, date)):
        return raw.strftime("%d/%m/%Y")

    text = str(raw).strip()
    if not text:
        return ""

    if _GVIZ_DATE.search(text):
        parts = _DIGITS.findall(text)
        if len(parts) >= 3:
            year, month, day = parts[0], int(parts[1]) + 1, int(parts[2])
            return f"{day:02d}/{month:02d}/{year}"

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = match.groups()
        return f"{day}/{month}/{year}"

    match = _DMY_DATE.match(text)
    if match:
        day, month, year = match.groups()
        return f"{day.zfill(2)}/{month.zfill(2)}/{year}"

    return text


def is_display_date(text: Optional[str]) -> bool:
    """Return ``True`` when ``text`` is a ``DD/MM/YYYY`` date as produced by :func:`parse_sheet_date`."""

    return bool(_DMY_DATE.match(_text(text)))


def display_to_iso_date(display: Optional[str]) -> str:
    """Convert ``DD/MM/YYYY`` into ``YYYY-MM-DD``; unknown shapes give ``""``."""

    text = _text(display)
    if not text:
        return ""
    if "/" in text:
        parts = text.split("/")
        if len(parts) == 3:
            day, month, year = parts
            return f"{year}-{month.zfill(2)}-{day.zfill(2)}"
    if _ISO_DATE.match(text):
        return text[:10]
    return ""


def iso_to_display_date(value: Optional[str]) -> str:
    """Convert ``YYYY-MM-DD`` into ``DD/MM/YYYY``; other text is returned as-is."""

    text = _text(value)
    if "-" not in text:
        return text
    parts = text.split("-")
    if len(parts) == 3:
        year, month, day = parts
        return f"{day}/{month}/{year}"
    return text
