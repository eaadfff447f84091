"""Warehouse documents (tickets) and their mapping onto ledger rows.

A ticket is one inbound (``PN``) or outbound (``PX``) document holding one or
more device line-items. The ledger stores it flattened: one row per item,
repeating the document header fields on every row.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from .constants import DOCUMENT_TYPE_LABELS, DocumentClass
from .data_manager import TransactionRow
from .normalize import display_to_iso_date, iso_to_display_date, parse_sheet_date


_UNSAFE_FILE_CHARS = re.compile(r'[/\\:*?"<>|]')


@dataclass(frozen=True)
class TicketItem:
    """One device line on a warehouse document."""

    item_name: str
    quantity: float = 1.0
    unit_price: float = 0.0
    item_code: str = ""
    description: str = ""
    unit: str = ""
    manufacturer: str = ""
    country: str = ""
    model_serial: str = ""
    warranty_date: str = ""
    note: str = ""

    @property
    def line_total(self) -> float:
        return line_total(self.quantity, self.unit_price)


@dataclass(frozen=True)
class WarehouseTicket:
    """Header fields of a document plus its items.

    ``document_date`` and item warranty dates use ISO ``YYYY-MM-DD`` form;
    they are converted to display form when written to the ledger.
    """

    document_class: DocumentClass
    document_id: str
    document_date: str
    partner: str
    department: str = ""
    items: tuple[TicketItem, ...] = field(default_factory=tuple)

    @property
    def total_amount(self) -> float:
        return sum(item.line_total for item in self.items)


def line_total(quantity: float, unit_price: float) -> float:
    """Return ``quantity * unit_price`` treating blanks as zero."""
    return (quantity or 0.0) * (unit_price or 0.0)


def ticket_to_rows(ticket: WarehouseTicket) -> List[TransactionRow]:
    """Flatten a ticket into ledger rows numbered from 1 in item order."""

    label = DOCUMENT_TYPE_LABELS[ticket.document_class]
    return [
        TransactionRow(
            sequence=str(index),
            document_type=label,
            partner=ticket.partner,
            department=ticket.department,
            document_id=ticket.document_id,
            document_date=ticket.document_date,
            item_code=item.item_code,
            item_name=item.item_name,
            description=item.description,
            unit=item.unit,
            manufacturer=item.manufacturer,
            country=item.country,
            model_serial=item.model_serial,
            warranty_date=iso_to_display_date(item.warranty_date),
            quantity=item.quantity or 0.0,
            unit_price=item.unit_price or 0.0,
            line_total=item.line_total,
            note=item.note,
        )
        for index, item in enumerate(ticket.items, start=1)
    ]


def ticket_from_rows(document_id: str, rows: Iterable[TransactionRow]) -> WarehouseTicket | None:
    """Rebuild a ticket from the ledger rows carrying ``document_id``.

    Header fields come from the first matching row. Returns ``None`` when no
    row matches.
    """

    wanted = document_id.strip().upper()
    related: Sequence[TransactionRow] = [row for row in rows if row.document_id.strip().upper() == wanted]
    if not related:
        return None

    first = related[0]
    if first.document_type:
        document_class = (
            DocumentClass.INBOUND
            if first.document_type == DOCUMENT_TYPE_LABELS[DocumentClass.INBOUND]
            else DocumentClass.OUTBOUND
        )
    else:
        document_class = DocumentClass.from_document_id(wanted)

    items = tuple(
        TicketItem(
            item_code=row.item_code,
            item_name=row.item_name,
            description=row.description,
            unit=row.unit,
            manufacturer=row.manufacturer,
            country=row.country,
            model_serial=row.model_serial,
            warranty_date=display_to_iso_date(parse_sheet_date(row.warranty_date)),
            quantity=row.quantity,
            unit_price=row.unit_price,
            note=row.note,
        )
        for row in related
    )
    return WarehouseTicket(
        document_class=document_class,
        document_id=wanted,
        document_date=display_to_iso_date(parse_sheet_date(first.document_date)),
        partner=first.partner,
        department=first.department,
        items=items,
    )


def voucher_file_name(ticket: WarehouseTicket) -> str:
    """File name used when the printed voucher is filed in the document folder."""
    safe_partner = _UNSAFE_FILE_CHARS.sub("-", ticket.partner)
    return f"Chung tu {ticket.document_id}+{safe_partner}.pdf"
