"""Utility for initializing the warehouse workbook.

The module doubles as a script (``python -m warehouse_ledger.setup_excel``)
and as a library used by tests. The created workbook mirrors the layout of the
hospital's shared spreadsheet: a title on row 1, headers on row 3 and data
from row 4 on every sheet.
"""

from __future__ import annotations

import argparse
import configparser
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

import openpyxl
from openpyxl.styles import Font

from .constants import (
    CATALOG_FIRST_COLUMN,
    CATALOG_HEADERS,
    LEDGER_HEADER_ROW,
    LEDGER_HEADERS,
    REFERENCE_HEADERS,
    SheetName,
)

CONFIG_FILE = "config.ini"


@dataclass(frozen=True)
class SetupSettings:
    """Configuration values needed to lay out a new workbook."""

    data_file: Path
    warehouse_name: str
    ledger_sheet: str = SheetName.LEDGER.value
    catalog_sheet: str = SheetName.CATALOG.value
    reference_sheet: str = SheetName.REFERENCE.value


def load_settings(config_path: Path) -> SetupSettings:
    """Read ``config.ini`` and produce :class:`SetupSettings`.

    Relative paths inside the config file are resolved against the config
    file's directory.
    """

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    parser = configparser.ConfigParser()
    parser.read(config_path, encoding="utf-8")

    try:
        data_file_raw = parser.get("System", "DataFile")
        warehouse_name = parser.get("System", "WarehouseName")
    except (configparser.NoSectionError, configparser.NoOptionError) as exc:
        raise KeyError(f"Missing required configuration entry: {exc}") from exc

    data_file_path = Path(data_file_raw)
    if not data_file_path.is_absolute():
        data_file_path = (config_path.parent / data_file_path).resolve()

    return SetupSettings(
        data_file=data_file_path,
        warehouse_name=warehouse_name,
        ledger_sheet=parser.get("Sheets", "Ledger", fallback=SheetName.LEDGER.value),
        catalog_sheet=parser.get("Sheets", "Catalog", fallback=SheetName.CATALOG.value),
        reference_sheet=parser.get("Sheets", "Reference", fallback=SheetName.REFERENCE.value),
    )


def _write_headers(worksheet, title: str, headers: Sequence[str], *, first_column: int = 1) -> None:
    bold_font = Font(bold=True)
    title_cell = worksheet.cell(row=1, column=first_column, value=title)
    title_cell.font = bold_font
    for offset, column_name in enumerate(headers):
        if not column_name:
            continue
        cell = worksheet.cell(row=LEDGER_HEADER_ROW, column=first_column + offset, value=column_name)
        cell.font = bold_font


def create_master_workbook(
    destination: Path,
    *,
    warehouse_name: str = "Kho thiết bị",
    ledger_sheet: str = SheetName.LEDGER.value,
    catalog_sheet: str = SheetName.CATALOG.value,
    reference_sheet: str = SheetName.REFERENCE.value,
    overwrite: bool = False,
) -> Path:
    """Create an empty warehouse workbook at ``destination``.

    When ``overwrite`` is ``False`` (the default) this function raises
    ``FileExistsError`` if the target already exists.
    """

    destination = destination.expanduser().resolve()
    if destination.exists() and not overwrite:
        raise FileExistsError(
            f"Refusing to overwrite existing warehouse workbook: {destination}"
        )

    destination.parent.mkdir(parents=True, exist_ok=True)

    workbook = openpyxl.Workbook()

    # Remove the default sheet openpyxl generates so we can create ours.
    if workbook.active and workbook.active.title == "Sheet":
        workbook.remove(workbook.active)

    _write_headers(workbook.create_sheet(title=ledger_sheet), warehouse_name, LEDGER_HEADERS)
    _write_headers(
        workbook.create_sheet(title=catalog_sheet),
        "Danh mục thiết bị",
        CATALOG_HEADERS,
        first_column=CATALOG_FIRST_COLUMN,
    )
    _write_headers(workbook.create_sheet(title=reference_sheet), "Danh mục dùng chung", REFERENCE_HEADERS)

    workbook.save(destination)
    return destination


def run_from_config(config_path: Path, *, overwrite: bool = False) -> Path:
    """Create the workbook named by ``config.ini``."""

    settings = load_settings(config_path)
    return create_master_workbook(
        settings.data_file,
        warehouse_name=settings.warehouse_name,
        ledger_sheet=settings.ledger_sheet,
        catalog_sheet=settings.catalog_sheet,
        reference_sheet=settings.reference_sheet,
        overwrite=overwrite,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the setup script."""

    parser = argparse.ArgumentParser(description="Initialize the warehouse workbook")
    parser.add_argument(
        "--config",
        default=CONFIG_FILE,
        help="Path to configuration file (default: config.ini)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the target workbook if it already exists.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the setup script."""

    args = parse_args(argv)
    config_path = Path(args.config).expanduser().resolve()

    print("--- Warehouse Ledger Setup ---")
    print(f"Using configuration: {config_path}")

    try:
        output_path = run_from_config(config_path, overwrite=args.force)
    except (FileNotFoundError, KeyError) as exc:
        print(f"\n[ERROR] {exc}")
        return 1
    except FileExistsError as exc:
        print(f"\n[ERROR] {exc}")
        print("Run with --force to overwrite the existing file if appropriate.")
        return 1
    except OSError as exc:
        print(f"\n[ERROR] Unable to write workbook: {exc}")
        return 1

    print(f"\n[SUCCESS] Created warehouse workbook at '{output_path}'.")
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via manual runs
    sys.exit(main())
