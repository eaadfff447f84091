"""Business logic layer for the warehouse ledger.

This module orchestrates the append-only ledger: it reads rows through the
Data Access Layer (DAL), derives the inventory snapshot and document numbers
with the pure functions in :mod:`warehouse_ledger.ledger`, and validates new
warehouse documents before they are appended.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from openpyxl.workbook import Workbook

from . import data_manager, ledger, log
from .constants import EXPECTED_SCHEMA_VERSION, DocumentClass
from .normalize import normalize_key
from .tickets import WarehouseTicket, ticket_from_rows, ticket_to_rows


class BusinessRuleViolation(Exception):
    """Raised when a requested operation violates a warehouse rule."""


class MissingReferenceError(BusinessRuleViolation):
    """Raised when a referenced document cannot be found in the ledger."""


@dataclass(frozen=True)
class RuntimeContext:
    """Container for configuration and workbook references used by the BLL."""

    settings: data_manager.ConfigSettings
    workbook: Workbook
    _cache: Dict[str, Dict[str, Any]] = field(default_factory=dict, repr=False, compare=False)


def _get_cache_bucket(context: RuntimeContext, name: str) -> Dict[str, Any]:
    """Return the mutable cache bucket dedicated to ``name``, creating it on first use."""

    bucket = context._cache.get(name)
    if bucket is None:
        log.debug("Initializing cache bucket '%s'", name)
        bucket = {}
        context._cache[name] = bucket
    return bucket


def _invalidate_cache(context: RuntimeContext, *names: str) -> None:
    """Evict cache buckets after the workbook changed.

    Missing buckets are ignored so callers can invalidate unconditionally.
    """

    if not names:
        return

    log.debug("Invalidating cache buckets: %s", ", ".join(names))

    for name in names:
        context._cache.pop(name, None)


def _ensure_transactions_cache(context: RuntimeContext) -> Dict[str, Any]:
    """Populate the ledger bucket on demand.

    The bucket holds the decoded rows (``all``) and the snapshot derived from
    them (``snapshot``, built lazily). Both are dropped together whenever the
    ledger changes, so the snapshot is always a full rebuild.
    """

    bucket = _get_cache_bucket(context, "transactions")
    if "all" not in bucket:
        all_rows = list(data_manager.iter_transactions(context.workbook, context.settings.ledger_sheet))
        bucket["all"] = all_rows
        log.debug("Populated transactions cache with %d rows", len(all_rows))
    return bucket


def load_runtime_context(config_path: Optional[Path] = None) -> RuntimeContext:
    """Load configuration settings and a live workbook for the BLL.

    Args:
        config_path (Path | None): Optional override path for the configuration
            file. When omitted the data layer searches upwards from the current
            working directory.

    Returns:
        RuntimeContext: Settings, workbook handle and an empty cache store.

    Raises:
        FileNotFoundError: If the configuration file or workbook cannot be
            located.
        KeyError: When mandatory configuration options are missing.
    """
    located_config = data_manager.find_config_file(config_path)
    resolved_config = Path(located_config).expanduser().resolve()
    parser = data_manager.read_config(resolved_config)
    settings = data_manager.parse_settings(parser, base_path=resolved_config.parent)
    workbook = data_manager.open_workbook(settings.data_file)
    log.info("Loaded runtime context for workbook '%s'", settings.data_file)
    return RuntimeContext(settings=settings, workbook=workbook)


def ensure_schema_version(context: RuntimeContext) -> None:
    """Refuse to work on a workbook whose declared schema version is unexpected.

    Raises:
        RuntimeError: If the configured schema version does not match
            ``EXPECTED_SCHEMA_VERSION``.
    """
    if context.settings.schema_version != EXPECTED_SCHEMA_VERSION:
        log.error(
            "Workbook schema mismatch: expected %s, found %s",
            EXPECTED_SCHEMA_VERSION,
            context.settings.schema_version,
        )
        raise RuntimeError(
            "Workbook schema mismatch: expected %s, found %s"
            % (EXPECTED_SCHEMA_VERSION, context.settings.schema_version)
        )

    log.debug("Schema version '%s' validated", context.settings.schema_version)


def list_transactions(context: RuntimeContext) -> List[data_manager.TransactionRow]:
    """Return a copy of the cached ledger in sheet (insertion) order."""
    cache = _ensure_transactions_cache(context)
    return list(cache["all"])


def build_snapshot(context: RuntimeContext) -> ledger.InventorySnapshot:
    """Return the inventory snapshot of the current ledger.

    The snapshot is reduced from the complete row list the first time it is
    requested after a load or an append, then served from cache.
    """
    cache = _ensure_transactions_cache(context)
    if "snapshot" not in cache:
        cache["snapshot"] = ledger.reduce_ledger(cache["all"])
        log.debug("Rebuilt inventory snapshot with %d items", len(cache["snapshot"].stock))
    return cache["snapshot"]


def list_catalog(context: RuntimeContext) -> List[data_manager.ItemMetadata]:
    """Return the device catalog (``DANHMUC``), cached per context."""
    bucket = _get_cache_bucket(context, "catalog")
    if "all" not in bucket:
        bucket["all"] = list(data_manager.iter_catalog(context.workbook, context.settings.catalog_sheet))
        log.debug("Populated catalog cache with %d entries", len(bucket["all"]))
    return list(bucket["all"])


def load_reference_lists(context: RuntimeContext) -> data_manager.ReferenceLists:
    """Return the pick lists of the ``DMDC`` sheet."""
    return data_manager.read_reference_lists(context.workbook, context.settings.reference_sheet)


def list_available_items(context: RuntimeContext, document_class: DocumentClass) -> List[data_manager.ItemMetadata]:
    """Items a form of ``document_class`` may offer; outbound forms need stock."""
    return ledger.available_items(
        build_snapshot(context),
        list_catalog(context),
        outbound=document_class is DocumentClass.OUTBOUND,
    )


def next_document_number(context: RuntimeContext, document_class: DocumentClass) -> str:
    """Allocate the next document id of ``document_class`` from the full ledger."""
    return ledger.next_document_id(_ensure_transactions_cache(context)["all"], document_class)


def validate_ticket(ticket: WarehouseTicket, snapshot: ledger.InventorySnapshot) -> None:
    """Check a document against the warehouse rules before it is appended.

    Args:
        ticket (WarehouseTicket): Document about to be recorded.
        snapshot (ledger.InventorySnapshot): Current inventory, used to make
            sure outbound quantities are covered by stock.

    Raises:
        BusinessRuleViolation: If the header is incomplete, the id does not
            carry the document class prefix, an item has no name or a
            non-positive quantity, or an outbound item exceeds current stock.
    """
    document_id = ticket.document_id.strip().upper()
    if not document_id or not ticket.partner.strip() or not ticket.items:
        log.warning("Rejected incomplete document '%s'", ticket.document_id)
        raise BusinessRuleViolation("A document needs an id, a partner and at least one item")
    if not document_id.startswith(ticket.document_class.value):
        log.warning("Document id '%s' does not match class %s", document_id, ticket.document_class.value)
        raise BusinessRuleViolation(
            f"Document id '{document_id}' must start with '{ticket.document_class.value}'"
        )

    requested: Dict[str, float] = {}
    for item in ticket.items:
        if not item.item_name.strip():
            raise BusinessRuleViolation("Every item needs a device name")
        if item.quantity <= 0:
            log.error("Quantity validation failed for '%s': %s", item.item_name, item.quantity)
            raise BusinessRuleViolation(f"Quantity for '{item.item_name}' must be greater than zero")
        key = normalize_key(item.item_code, item.item_name)
        requested[key] = requested.get(key, 0.0) + item.quantity

    if ticket.document_class is not DocumentClass.OUTBOUND:
        return

    for key, quantity in requested.items():
        available = snapshot.stock.get(key, 0.0)
        if quantity > available:
            log.warning("Outbound quantity %s for '%s' exceeds stock %s", quantity, key, available)
            raise BusinessRuleViolation(
                f"Outbound quantity ({quantity:g}) exceeds current stock ({available:g}) for '{key}'"
            )


def record_ticket(context: RuntimeContext, ticket: WarehouseTicket) -> List[data_manager.TransactionRow]:
    """Validate and append a warehouse document to the ledger.

    Each item becomes one ledger row. Appending to an id that already exists
    is allowed (the sheet is append-only, corrections are made by adding
    rows) but logged. The ledger cache is invalidated so the next snapshot
    and document number are recomputed from the updated table.

    Returns:
        list[data_manager.TransactionRow]: The appended rows.

    Raises:
        BusinessRuleViolation: When :func:`validate_ticket` rejects the
            document.
    """
    validate_ticket(ticket, build_snapshot(context))

    existing = {row.document_id.strip().upper() for row in list_transactions(context)}
    if ticket.document_id.strip().upper() in existing:
        log.warning("Document '%s' already exists; appending additional rows", ticket.document_id)

    rows = ticket_to_rows(ticket)
    data_manager.append_transactions(context.workbook, rows, context.settings.ledger_sheet)
    _invalidate_cache(context, "transactions")
    log.info(
        "Recorded %s document '%s' with %d items (total=%s)",
        ticket.document_class.value,
        ticket.document_id,
        len(rows),
        ticket.total_amount,
    )
    return rows


def load_ticket(context: RuntimeContext, document_id: str) -> WarehouseTicket:
    """Rebuild a recorded document from its ledger rows.

    Raises:
        MissingReferenceError: If no row carries ``document_id``.
    """
    ticket = ticket_from_rows(document_id, list_transactions(context))
    if ticket is None:
        log.warning("Document lookup failed for id '%s'", document_id)
        raise MissingReferenceError(f"Unknown document id: {document_id}")
    return ticket


def document_folder_link(settings: data_manager.ConfigSettings, document_id: str) -> str:
    """Search link for a document's scanned vouchers inside the configured folder."""
    if not settings.documents_folder_url:
        return ""
    return f"{settings.documents_folder_url}?q={quote(document_id.strip())}"


def persist_context(context: RuntimeContext) -> None:
    """Write in-memory workbook changes to the configured data file."""
    data_manager.save_workbook(
        context.workbook,
        destination=context.settings.data_file,
    )
    log.info("Persisted workbook '%s'", context.settings.data_file)


def refresh_context(context: RuntimeContext) -> RuntimeContext:
    """Reload the workbook, discarding unsaved modifications and cached data.

    Raises:
        FileNotFoundError: If the backing workbook cannot be reloaded.
    """
    workbook = data_manager.refresh_workbook(context.settings.data_file)
    log.info("Reloaded workbook '%s'", context.settings.data_file)
    return RuntimeContext(settings=context.settings, workbook=workbook)
