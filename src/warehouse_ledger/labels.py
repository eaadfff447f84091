"""QR label payloads for received and issued devices.

Most ledger rows carry the label text in column S. Rows entered by hand
often leave it blank, in which case the payload is rebuilt from the row's
own fields with wording that depends on the document direction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List

from .constants import DocumentClass
from .data_manager import TransactionRow
from .ledger import is_header_row
from .normalize import parse_sheet_date


@dataclass(frozen=True)
class DeviceLabel:
    """Printable label for one ledger row."""

    row_index: int
    document_id: str
    payload: str
    item_name: str
    department: str
    model_serial: str


def build_label_payload(row: TransactionRow) -> str:
    """Return the stored label text, or rebuild it from the row fields."""

    if row.label_content.strip():
        return row.label_content.strip()
    if not row.document_id.strip():
        return ""

    if DocumentClass.from_document_id(row.document_id) is DocumentClass.OUTBOUND:
        partner_label, date_label = "Khoa phòng: ", "Ngày cấp: "
    else:
        partner_label, date_label = "Nhà CC: ", "Ngày giao: "

    lines = [
        f"Tên thiết bị: {row.item_name.strip()}",
        f"{partner_label}{row.partner.strip()}",
        f"Bộ phận sử dụng: {row.department.strip()}",
        f"{date_label}{parse_sheet_date(row.document_date)}",
        f"Model, Serial: {row.model_serial.strip()}",
        f"Bảo hành: {parse_sheet_date(row.warranty_date)}",
    ]
    return "\n".join(lines)


def build_labels(rows: Iterable[TransactionRow]) -> Iterator[DeviceLabel]:
    """Yield a label for every row that belongs to a document."""

    for index, row in enumerate(rows):
        document_id = row.document_id.strip()
        if not document_id or is_header_row(row):
            continue
        yield DeviceLabel(
            row_index=index,
            document_id=document_id,
            payload=build_label_payload(row),
            item_name=row.item_name.strip(),
            department=row.department.strip(),
            model_serial=row.model_serial.strip(),
        )


def labels_for_document(labels: Iterable[DeviceLabel], document_id: str) -> List[DeviceLabel]:
    wanted = document_id.strip().upper()
    return [label for label in labels if label.document_id.upper() == wanted]


def document_ids(labels: Iterable[DeviceLabel]) -> List[str]:
    return sorted({label.document_id for label in labels})
