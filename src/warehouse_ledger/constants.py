"""Enumerations and fixed layout constants shared across the warehouse ledger.

The ledger sheet has no enforced header contract, so every layer reads cells
by position. Keeping the positions here gives the data access layer (DAL), the
pure ledger functions and the CLI a single source of truth.
"""

from __future__ import annotations

from enum import Enum, IntEnum


# Central schema version expected by all layers when validating workbooks.
EXPECTED_SCHEMA_VERSION = "1.0.0"


class DocumentClass(str, Enum):
    """Enumerate the document prefixes that discriminate ledger rows."""

    INBOUND = "PN"
    OUTBOUND = "PX"

    @property
    def label(self) -> str:
        """Human readable document type written into column B."""
        return DOCUMENT_TYPE_LABELS[self]

    @classmethod
    def from_document_id(cls, document_id: str) -> "DocumentClass":
        """Classify a document id; anything that is not ``PX`` counts as inbound."""
        if document_id.strip().upper().startswith(cls.OUTBOUND.value):
            return cls.OUTBOUND
        return cls.INBOUND


DOCUMENT_TYPE_LABELS = {
    DocumentClass.INBOUND: "Phiếu nhập",
    DocumentClass.OUTBOUND: "Phiếu xuất",
}


class SheetName(str, Enum):
    """Enumerate the default worksheet names managed by the DAL."""

    LEDGER = "DULIEU"
    CATALOG = "DANHMUC"
    REFERENCE = "DMDC"


class LedgerColumn(IntEnum):
    """Zero-based positions of the ledger sheet columns (A to U)."""

    SEQUENCE = 0
    DOCUMENT_TYPE = 1
    PARTNER = 2
    DEPARTMENT = 3
    DOCUMENT_ID = 4
    DOCUMENT_DATE = 5
    ITEM_CODE = 6
    ITEM_NAME = 7
    DESCRIPTION = 8
    UNIT = 9
    MANUFACTURER = 10
    COUNTRY = 11
    MODEL_SERIAL = 12
    WARRANTY_DATE = 13
    QUANTITY = 14
    UNIT_PRICE = 15
    LINE_TOTAL = 16
    NOTE = 17
    LABEL_CONTENT = 18


LEDGER_WIDTH = 21

# The ledger header sits on sheet row 3; data starts right below it.
LEDGER_HEADER_ROW = 3
LEDGER_FIRST_DATA_ROW = 4

# Catalog rows live in columns C..I, reference lists in columns A..E.
CATALOG_FIRST_COLUMN = 3
CATALOG_WIDTH = 7
REFERENCE_WIDTH = 5
LOOKUP_FIRST_DATA_ROW = 4

HEADER_SENTINELS = frozenset({"SỐ PHIẾU", "SO PHIEU"})
SEQUENCE_HEADER = "STT"

LEDGER_HEADERS = (
    "STT",
    "Loại phiếu",
    "Nhà CC / Khoa phòng",
    "Bộ phận sử dụng",
    "Số phiếu",
    "Ngày",
    "Mã thiết bị",
    "Tên thiết bị",
    "Chi tiết",
    "ĐVT",
    "Hãng SX",
    "Nước SX",
    "Model, Serial",
    "Bảo hành",
    "Số lượng",
    "Đơn giá",
    "Thành tiền",
    "Ghi chú",
    "Mã QR",
    "",
    "",
)

CATALOG_HEADERS = (
    "Mã thiết bị",
    "Tên thiết bị",
    "Chi tiết",
    "ĐVT",
    "Hãng SX",
    "Nước SX",
    "Model",
)

REFERENCE_HEADERS = (
    "Khoa phòng",
    "Bộ phận",
    "Hãng SX",
    "Nước SX",
    "Nhà cung cấp",
)


__all__ = [
    "EXPECTED_SCHEMA_VERSION",
    "DocumentClass",
    "DOCUMENT_TYPE_LABELS",
    "SheetName",
    "LedgerColumn",
    "LEDGER_WIDTH",
    "LEDGER_HEADER_ROW",
    "LEDGER_FIRST_DATA_ROW",
    "CATALOG_FIRST_COLUMN",
    "CATALOG_WIDTH",
    "REFERENCE_WIDTH",
    "LOOKUP_FIRST_DATA_ROW",
    "HEADER_SENTINELS",
    "SEQUENCE_HEADER",
    "LEDGER_HEADERS",
    "CATALOG_HEADERS",
    "REFERENCE_HEADERS",
]
