"""Pure ledger computations over the ordered transaction log.

Nothing in this module performs I/O or keeps state between calls. The
inventory snapshot is rebuilt from the full row list every time, and the next
document number is recomputed from the full row list after every append.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Union

from . import log
from .constants import HEADER_SENTINELS, SEQUENCE_HEADER, DocumentClass
from .data_manager import ItemMetadata, TransactionRow
from .normalize import is_display_date, normalize_key, parse_locale_number, parse_sheet_date


_NON_DIGITS = re.compile(r"\D")
DOCUMENT_NUMBER_WIDTH = 4


@dataclass(frozen=True)
class InventorySnapshot:
    """Derived view of the ledger, keyed by normalized item key.

    ``stock`` is the signed running total and may be negative when the log
    issues more than it received. The three ``last_*`` mappings only ever
    hold values taken from inbound rows.
    """

    stock: Dict[str, float] = field(default_factory=dict)
    last_unit_price: Dict[str, float] = field(default_factory=dict)
    last_warranty: Dict[str, str] = field(default_factory=dict)
    last_metadata: Dict[str, ItemMetadata] = field(default_factory=dict)

    def stock_for(self, code: Optional[str], name: Optional[str]) -> float:
        return self.stock.get(normalize_key(code, name), 0.0)

    def price_for(self, code: Optional[str], name: Optional[str]) -> float:
        return self.last_unit_price.get(normalize_key(code, name), 0.0)

    def warranty_for(self, code: Optional[str], name: Optional[str]) -> str:
        return self.last_warranty.get(normalize_key(code, name), "")

    def metadata_for(self, code: Optional[str], name: Optional[str]) -> Optional[ItemMetadata]:
        return self.last_metadata.get(normalize_key(code, name))


def is_header_row(row: TransactionRow) -> bool:
    """Return ``True`` for header lines pasted into the data area."""

    if row.sequence.strip().upper() == SEQUENCE_HEADER:
        return True
    return row.document_id.strip().upper() in HEADER_SENTINELS


def reduce_ledger(rows: Iterable[TransactionRow]) -> InventorySnapshot:
    """Fold the ordered ledger into an :class:`InventorySnapshot`.

    Rows are processed in the given order, which must be insertion order.
    For every row with an item key and a real document id:

    * ``PX`` documents subtract their quantity, every other prefix adds it;
    * an inbound row whose quantity parses to ``0`` but which names an item
      counts as one unit (blank quantity cells mean "one device");
    * inbound rows replace the item's metadata, and replace its warranty date
      only with a recognized date and its unit price only with a positive
      value.

    Malformed rows are skipped or read as zero; the function never raises.
    """

    stock: Dict[str, float] = {}
    prices: Dict[str, float] = {}
    warranties: Dict[str, str] = {}
    metadata: Dict[str, ItemMetadata] = {}
    skipped = 0

    for row in rows:
        key = normalize_key(row.item_code, row.item_name)
        if not key or not row.document_id.strip() or is_header_row(row):
            skipped += 1
            continue

        quantity = parse_locale_number(row.quantity)
        current = stock.get(key, 0.0)

        if DocumentClass.from_document_id(row.document_id) is DocumentClass.OUTBOUND:
            stock[key] = current - quantity
            continue

        if quantity == 0 and row.item_name.strip():
            quantity = 1.0
        stock[key] = current + quantity

        metadata[key] = row.metadata
        warranty = parse_sheet_date(row.warranty_date)
        if is_display_date(warranty):
            warranties[key] = warranty
        price = parse_locale_number(row.unit_price)
        if price > 0:
            prices[key] = price

    log.debug("Reduced ledger into %d item keys (%d rows skipped)", len(stock), skipped)
    return InventorySnapshot(
        stock=stock,
        last_unit_price=prices,
        last_warranty=warranties,
        last_metadata=metadata,
    )


def next_document_id(rows: Iterable[TransactionRow], class_prefix: Union[DocumentClass, str]) -> str:
    """Allocate the next sequential document id of one document class.

    Every id starting with ``class_prefix`` (case-insensitive) contributes the
    integer formed by all of its digits, so ``"PN007-A"`` counts as 7. Ids
    without digits are ignored rather than read as zero.

    Args:
        rows (Iterable[TransactionRow]): The complete current ledger.
        class_prefix (DocumentClass | str): ``"PN"`` or ``"PX"``.

    Returns:
        str: ``prefix`` followed by the zero-padded successor of the highest
            number seen, ``prefix + "0001"`` when the class is empty.
    """

    if isinstance(class_prefix, DocumentClass):
        prefix = class_prefix.value
    else:
        prefix = str(class_prefix).strip().upper()
    highest = 0
    for row in rows:
        document_id = row.document_id.strip().upper()
        if not document_id or is_header_row(row) or not document_id.startswith(prefix):
            continue
        digits = _NON_DIGITS.sub("", document_id)
        if not digits:
            continue
        highest = max(highest, int(digits))

    return f"{prefix}{str(highest + 1).zfill(DOCUMENT_NUMBER_WIDTH)}"


def available_items(
    snapshot: InventorySnapshot,
    catalog: Iterable[ItemMetadata],
    *,
    outbound: bool,
) -> List[ItemMetadata]:
    """List the items a warehouse form may offer.

    Catalog entries come first, followed by items only known from inbound
    ledger rows. Outbound forms only offer items with positive stock.
    """

    items: List[ItemMetadata] = []
    seen: set[str] = set()
    for item in catalog:
        key = normalize_key(item.item_code, item.item_name)
        if key and key not in seen:
            seen.add(key)
            items.append(item)
    for key, item in snapshot.last_metadata.items():
        if key not in seen:
            seen.add(key)
            items.append(item)

    if not outbound:
        return items
    return [
        item for item in items
        if snapshot.stock.get(normalize_key(item.item_code, item.item_name), 0.0) > 0
    ]


def stock_report(snapshot: InventorySnapshot) -> Mapping[str, float]:
    """Return the stock mapping ordered by item key for display."""

    return dict(sorted(snapshot.stock.items()))
