"""Data access layer for the warehouse ledger.

This module provides low-level helpers that read from and write to the
warehouse workbook. Business logic belongs elsewhere.

The public API is designed around three responsibilities:

1. Configuration handling: finding and parsing ``config.ini``.
2. Workbook lifecycle: opening and persisting the Excel file.
3. Sheet operations: decoding positional rows into named records and
   appending new ledger rows.

The ledger sheet carries no header contract, so :func:`decode_transaction`
is the only place in the package that knows which column holds which field.
"""


from __future__ import annotations

import configparser
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import openpyxl
from openpyxl.workbook import Workbook

from . import log
from .constants import (
    CATALOG_FIRST_COLUMN,
    CATALOG_WIDTH,
    LEDGER_FIRST_DATA_ROW,
    LEDGER_WIDTH,
    LOOKUP_FIRST_DATA_ROW,
    REFERENCE_WIDTH,
    LedgerColumn,
    SheetName,
)
from .normalize import parse_locale_number


CONFIG_FILE_NAME = "config.ini"


@dataclass(frozen=True)
class ConfigSettings:
    """Typed representation of the ``config.ini`` settings we care about."""

    data_file: Path
    warehouse_name: str
    schema_version: str
    ledger_sheet: str = SheetName.LEDGER.value
    catalog_sheet: str = SheetName.CATALOG.value
    reference_sheet: str = SheetName.REFERENCE.value
    documents_folder_url: str = ""


@dataclass(frozen=True)
class ItemMetadata:
    """Descriptive fields of an item type, as captured from inbound rows."""

    item_code: str = ""
    item_name: str = ""
    description: str = ""
    unit: str = ""
    manufacturer: str = ""
    country: str = ""
    model_serial: str = ""


@dataclass(frozen=True)
class TransactionRow:
    """In-memory view of one line-item row from the ledger sheet."""

    document_id: str = ""
    item_code: str = ""
    item_name: str = ""
    quantity: float = 0.0
    unit_price: float = 0.0
    line_total: float = 0.0
    warranty_date: str = ""
    description: str = ""
    unit: str = ""
    manufacturer: str = ""
    country: str = ""
    model_serial: str = ""
    document_date: str = ""
    sequence: str = ""
    document_type: str = ""
    partner: str = ""
    department: str = ""
    note: str = ""
    label_content: str = ""

    @property
    def metadata(self) -> ItemMetadata:
        return ItemMetadata(
            item_code=self.item_code,
            item_name=self.item_name,
            description=self.description,
            unit=self.unit,
            manufacturer=self.manufacturer,
            country=self.country,
            model_serial=self.model_serial,
        )


@dataclass(frozen=True)
class ReferenceLists:
    """Distinct values of the ``DMDC`` sheet used to fill form pick lists."""

    departments: tuple[str, ...] = ()
    sections: tuple[str, ...] = ()
    brands: tuple[str, ...] = ()
    countries: tuple[str, ...] = ()
    suppliers: tuple[str, ...] = ()


def find_config_file(explicit_path: Optional[Path] = None) -> Path:
    """Locate the configuration file that controls how the data layer behaves.

    If the caller provides ``explicit_path`` the value is returned immediately
    without any verification. Otherwise the function walks up from the current
    working directory toward the filesystem root looking for a file named
    ``CONFIG_FILE_NAME``; the first match is considered authoritative.

    Args:
        explicit_path (Path | None): Optional path to use instead of performing
            the upward search.

    Returns:
        Path: The path provided by the caller or the discovered configuration
            file.

    Raises:
        FileNotFoundError: If no parent directory holds ``CONFIG_FILE_NAME``.
    """

    if explicit_path:
        return explicit_path

    current = Path.cwd()
    for p in (current, *current.parents):
        candidate = p / CONFIG_FILE_NAME
        if candidate.exists():
            return candidate

    raise FileNotFoundError(
        f"Configuration file not found: {CONFIG_FILE_NAME}")


def read_config(config_path: Path) -> configparser.ConfigParser:
    """Load ``config.ini`` and return a populated ``ConfigParser`` instance.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist after expansion and
            resolution.
    """

    config_path = config_path.expanduser().resolve()
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")
    return parser


def parse_settings(parser: configparser.ConfigParser, *, base_path: Optional[Path] = None) -> ConfigSettings:
    """Convert a ``ConfigParser`` into strongly typed :class:`ConfigSettings`.

    ``[System]`` entries are mandatory. The ``[Sheets]`` and ``[Documents]``
    sections are optional and fall back to the standard sheet names and an
    empty voucher folder. Relative ``DataFile`` entries are anchored to
    ``base_path`` (or the current working directory).

    Raises:
        KeyError: If one of the required sections or options is missing.
    """

    try:
        data_file_raw = parser.get("System", "DataFile")
        warehouse_name = parser.get("System", "WarehouseName")
        schema_version = parser.get("System", "SchemaVersion")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        if base_path is None:
            base_path = Path.cwd()
        data_file_path = (base_path / data_file_path).resolve()

    return ConfigSettings(
        data_file=data_file_path,
        warehouse_name=warehouse_name,
        schema_version=schema_version,
        ledger_sheet=parser.get("Sheets", "Ledger", fallback=SheetName.LEDGER.value),
        catalog_sheet=parser.get("Sheets", "Catalog", fallback=SheetName.CATALOG.value),
        reference_sheet=parser.get("Sheets", "Reference", fallback=SheetName.REFERENCE.value),
        documents_folder_url=parser.get("Documents", "FolderUrl", fallback="").strip(),
    )


def open_workbook(data_file: Path) -> Workbook:
    """Open the warehouse workbook and return a live ``openpyxl`` workbook.

    Raises:
        FileNotFoundError: If ``data_file`` does not exist after expansion and
            resolution.
    """

    data_file = Path(data_file).expanduser().resolve()
    if not data_file.exists():
        raise FileNotFoundError(f"Workbook not found: {data_file}")

    return openpyxl.load_workbook(data_file)


def save_workbook(workbook: Workbook, destination: Path) -> None:
    """Persist the workbook to disk, creating parent folders on demand."""

    dest = Path(destination).expanduser().resolve()
    dest.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(dest)


def refresh_workbook(data_file: Path) -> Workbook:
    """Reload the workbook from disk, discarding any unsaved in-memory changes."""

    return open_workbook(data_file)


def iter_transactions(workbook: Workbook, sheet_name: str = SheetName.LEDGER.value) -> Iterable[TransactionRow]:
    """Stream ledger rows in sheet order, i.e. insertion order.

    Rows above :data:`LEDGER_FIRST_DATA_ROW` (titles and the header line)
    and rows whose cells are all blank are skipped. Header rows that were
    pasted again further down are *not* filtered here; the ledger functions
    recognize and skip them.

    Args:
        workbook (Workbook): Workbook containing the ledger sheet.
        sheet_name (str): Worksheet name, ``DULIEU`` unless configured.

    Yields:
        TransactionRow: Decoded record for each populated row.
    """

    sheet = workbook[sheet_name]
    for raw in sheet.iter_rows(min_row=LEDGER_FIRST_DATA_ROW, max_col=LEDGER_WIDTH, values_only=True):
        if any(_cell_text(cell) for cell in raw):
            yield decode_transaction(raw)


def iter_catalog(workbook: Workbook, sheet_name: str = SheetName.CATALOG.value) -> Iterable[ItemMetadata]:
    """Yield catalog entries that have at least a code or a name."""

    sheet = workbook[sheet_name]
    for raw in sheet.iter_rows(
        min_row=LOOKUP_FIRST_DATA_ROW,
        min_col=CATALOG_FIRST_COLUMN,
        max_col=CATALOG_FIRST_COLUMN + CATALOG_WIDTH - 1,
        values_only=True,
    ):
        item = decode_catalog_item(raw)
        if item.item_code or item.item_name:
            yield item


def read_reference_lists(workbook: Workbook, sheet_name: str = SheetName.REFERENCE.value) -> ReferenceLists:
    """Collect the distinct, non-blank values of each ``DMDC`` column."""

    sheet = workbook[sheet_name]
    columns: List[List[str]] = [[] for _ in range(REFERENCE_WIDTH)]
    for raw in sheet.iter_rows(min_row=LOOKUP_FIRST_DATA_ROW, max_col=REFERENCE_WIDTH, values_only=True):
        for index, cell in enumerate(raw):
            value = _cell_text(cell)
            if value and value not in columns[index]:
                columns[index].append(value)

    departments, sections, brands, countries, suppliers = (tuple(values) for values in columns)
    return ReferenceLists(
        departments=departments,
        sections=sections,
        brands=brands,
        countries=countries,
        suppliers=suppliers,
    )


def append_transactions(workbook: Workbook, records: Sequence[TransactionRow], sheet_name: str = SheetName.LEDGER.value) -> None:
    """Append ledger rows below the last populated row of the sheet.

    Args:
        workbook (Workbook): Workbook containing the ledger sheet.
        records (Sequence[TransactionRow]): Rows in the order they should
            appear in the log.
        sheet_name (str): Worksheet name, ``DULIEU`` unless configured.
    """

    sheet = workbook[sheet_name]
    for record in records:
        sheet.append(serialize_transaction(record))
    log.debug("Appended %d rows to sheet '%s'", len(records), sheet_name)


def serialize_transaction(record: TransactionRow) -> list[object]:
    """Convert a transaction dataclass into the ledger column order.

    Returns:
        list[object]: Values for columns A..S; numeric columns stay numeric so
            the sheet can format them.
    """

    values: list[object] = [""] * (LedgerColumn.LABEL_CONTENT + 1)
    values[LedgerColumn.SEQUENCE] = int(record.sequence) if record.sequence.isdigit() else record.sequence
    values[LedgerColumn.DOCUMENT_TYPE] = record.document_type
    values[LedgerColumn.PARTNER] = record.partner
    values[LedgerColumn.DEPARTMENT] = record.department
    values[LedgerColumn.DOCUMENT_ID] = record.document_id
    values[LedgerColumn.DOCUMENT_DATE] = record.document_date
    values[LedgerColumn.ITEM_CODE] = record.item_code
    values[LedgerColumn.ITEM_NAME] = record.item_name
    values[LedgerColumn.DESCRIPTION] = record.description
    values[LedgerColumn.UNIT] = record.unit
    values[LedgerColumn.MANUFACTURER] = record.manufacturer
    values[LedgerColumn.COUNTRY] = record.country
    values[LedgerColumn.MODEL_SERIAL] = record.model_serial
    values[LedgerColumn.WARRANTY_DATE] = record.warranty_date
    values[LedgerColumn.QUANTITY] = _sheet_number(record.quantity)
    values[LedgerColumn.UNIT_PRICE] = _sheet_number(record.unit_price)
    values[LedgerColumn.LINE_TOTAL] = _sheet_number(record.line_total)
    values[LedgerColumn.NOTE] = record.note
    values[LedgerColumn.LABEL_CONTENT] = record.label_content
    return values


def decode_transaction(raw_row: Sequence[object]) -> TransactionRow:
    """Convert a raw positional ledger row into a named record.

    Short rows are padded with blanks. Text columns become trimmed strings,
    date cells become ISO text and numeric columns go through
    :func:`~warehouse_ledger.normalize.parse_locale_number`, so a malformed
    cell degrades to ``0`` instead of failing the read.

    Args:
        raw_row (Sequence[object]): Cell values of one sheet row.

    Returns:
        TransactionRow: Dataclass keyed by field name.
    """

    cells = list(raw_row) + [None] * max(0, LEDGER_WIDTH - len(raw_row))

    def text(column: LedgerColumn) -> str:
        return _cell_text(cells[column])

    return TransactionRow(
        sequence=text(LedgerColumn.SEQUENCE),
        document_type=text(LedgerColumn.DOCUMENT_TYPE),
        partner=text(LedgerColumn.PARTNER),
        department=text(LedgerColumn.DEPARTMENT),
        document_id=text(LedgerColumn.DOCUMENT_ID),
        document_date=text(LedgerColumn.DOCUMENT_DATE),
        item_code=text(LedgerColumn.ITEM_CODE),
        item_name=text(LedgerColumn.ITEM_NAME),
        description=text(LedgerColumn.DESCRIPTION),
        unit=text(LedgerColumn.UNIT),
        manufacturer=text(LedgerColumn.MANUFACTURER),
        country=text(LedgerColumn.COUNTRY),
        model_serial=text(LedgerColumn.MODEL_SERIAL),
        warranty_date=text(LedgerColumn.WARRANTY_DATE),
        quantity=parse_locale_number(cells[LedgerColumn.QUANTITY]),
        unit_price=parse_locale_number(cells[LedgerColumn.UNIT_PRICE]),
        line_total=parse_locale_number(cells[LedgerColumn.LINE_TOTAL]),
        note=text(LedgerColumn.NOTE),
        label_content=text(LedgerColumn.LABEL_CONTENT),
    )


def decode_catalog_item(raw_row: Sequence[object]) -> ItemMetadata:
    """Convert a ``DANHMUC`` row (columns C..I) into :class:`ItemMetadata`."""

    cells = [_cell_text(cell) for cell in raw_row]
    cells += [""] * max(0, CATALOG_WIDTH - len(cells))
    code, name, description, unit, manufacturer, country, model = cells[:CATALOG_WIDTH]
    return ItemMetadata(
        item_code=code,
        item_name=name,
        description=description,
        unit=unit,
        manufacturer=manufacturer,
        country=country,
        model_serial=model,
    )


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _sheet_number(value: float) -> object:
    return int(value) if float(value).is_integer() else value
