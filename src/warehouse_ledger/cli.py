"""Command-line entry points for the warehouse ledger.

All orchestration in this module is limited to argparse wiring, translating
command-line arguments into the objects consumed by the business layer and
printing the results. Keeping the CLI thin lets tests, scripts or another
front-end reuse the same parser configuration.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Iterable, Mapping, MutableMapping, Optional, Sequence

from . import core_logic, labels, ledger, log, reports
from .constants import DocumentClass
from .currency import amount_to_words
from .normalize import format_locale_number, parse_locale_number
from .tickets import TicketItem, WarehouseTicket, voucher_file_name


@dataclass(frozen=True)
class CommandSpec:
    """Describe how a CLI sub-command is configured and executed."""

    name: str
    help_text: str
    register: Callable[[argparse._SubParsersAction[argparse.ArgumentParser]], argparse.ArgumentParser]
    execute: Callable[[Optional[core_logic.RuntimeContext], argparse.Namespace], int]
    mutates: bool = False
    needs_context: bool = True


def build_parser() -> argparse.ArgumentParser:
    """Construct the top-level CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="warehouse-cli",
        description="Command-line tools for the hospital warehouse ledger.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional path to config.ini (defaults to ./config.ini).",
    )
    return parser


def configure_subcommands(
    parser: argparse.ArgumentParser,
) -> Mapping[str, CommandSpec]:
    """Wire all CLI sub-commands onto the supplied parser."""
    subparsers = parser.add_subparsers(dest="command", required=True, title="commands")
    write_specs = register_write_commands(subparsers)
    read_specs = register_read_commands(subparsers)
    return build_command_table([*write_specs.values(), *read_specs.values()])


def register_write_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare the commands that append documents to the ledger."""
    specs = {
        "receive": register_document_command(subparsers, DocumentClass.INBOUND),
        "issue": register_document_command(subparsers, DocumentClass.OUTBOUND),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def register_read_commands(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> Dict[str, CommandSpec]:
    """Declare read-only commands such as reports and lookups."""
    specs = {
        "stock": register_stock_command(subparsers),
        "next-id": register_next_id_command(subparsers),
        "items": register_items_command(subparsers),
        "show-ticket": register_show_ticket_command(subparsers),
        "labels": register_labels_command(subparsers),
        "lookup": register_lookup_command(subparsers),
        "summary": register_summary_command(subparsers),
        "words": register_words_command(subparsers),
    }
    for spec in specs.values():
        spec.register(subparsers)
    return specs


def _document_class_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--class",
        dest="document_class",
        choices=[member.value for member in DocumentClass],
        default=DocumentClass.INBOUND.value,
    )


def register_document_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
    document_class: DocumentClass,
) -> CommandSpec:
    """Register ``receive`` (PN) or ``issue`` (PX) for a one-item document."""
    if document_class is DocumentClass.INBOUND:
        name, help_text = "receive", "Record a warehouse-in document (PN)."
    else:
        name, help_text = "issue", "Record a warehouse-out document (PX)."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("--document-id", default=None, help="Defaults to the next free number.")
        parser.add_argument("--date", dest="document_date", default=None, help="YYYY-MM-DD, defaults to today.")
        parser.add_argument("--partner", required=True, help="Supplier (PN) or requesting department (PX).")
        parser.add_argument("--department", default="")
        parser.add_argument("--item-code", default="")
        parser.add_argument("--item-name", required=True)
        parser.add_argument("--description", default="")
        parser.add_argument("--unit", default="")
        parser.add_argument("--manufacturer", default="")
        parser.add_argument("--country", default="")
        parser.add_argument("--model-serial", default="")
        parser.add_argument("--warranty", default="", help="YYYY-MM-DD")
        parser.add_argument("--quantity", type=float, default=1.0)
        parser.add_argument("--unit-price", default="0")
        parser.add_argument("--note", default="")
        parser.set_defaults(command=name, document_class=document_class.value)
        return parser

    return CommandSpec(
        name=name,
        help_text=help_text,
        register=registrar,
        execute=run_record_document,
        mutates=True,
    )


def register_stock_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``stock``."""
    name = "stock"
    help_text = "Display current stock, last price and warranty per item."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_stock_report)


def register_next_id_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``next-id``."""
    name = "next-id"
    help_text = "Print the next free document number."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        _document_class_argument(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_next_id)


def register_items_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``items``."""
    name = "items"
    help_text = "List the items a receive or issue form may offer."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        _document_class_argument(parser)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_items)


def register_show_ticket_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``show-ticket``."""
    name = "show-ticket"
    help_text = "Display a recorded document with its total in words."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("document_id")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_show_ticket)


def register_labels_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``labels``."""
    name = "labels"
    help_text = "Print QR label payloads, or list documents when no id is given."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("document_id", nargs="?", default=None)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_labels)


def register_lookup_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``lookup``."""
    name = "lookup"
    help_text = "Search ledger rows by document, device, model/serial or department."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("term")
        parser.add_argument("--limit", type=int, default=reports.SEARCH_LIMIT)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_lookup)


def register_summary_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``summary``."""
    name = "summary"
    help_text = "Display dashboard figures."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(name=name, help_text=help_text, register=registrar, execute=run_summary)


def register_words_command(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> CommandSpec:
    """Register the parser and executor for ``words``."""
    name = "words"
    help_text = "Spell a VND amount in Vietnamese."

    def registrar(action: argparse._SubParsersAction[argparse.ArgumentParser]) -> argparse.ArgumentParser:
        parser = action.add_parser(name, help=help_text)
        parser.add_argument("amount")
        parser.set_defaults(command=name)
        return parser

    return CommandSpec(
        name=name,
        help_text=help_text,
        register=registrar,
        execute=run_words,
        needs_context=False,
    )


def load_runtime_context(config_path: Optional[Path] = None) -> core_logic.RuntimeContext:
    """Resolve the runtime context for CLI operations."""
    target = Path(config_path) if config_path is not None else Path.cwd() / "config.ini"
    context = core_logic.load_runtime_context(target)
    core_logic.ensure_schema_version(context)
    return context


def dispatch_command(
    context: Optional[core_logic.RuntimeContext],
    args: argparse.Namespace,
    command_table: Mapping[str, CommandSpec],
) -> int:
    """Dispatch the parsed arguments to the configured executor."""
    if not hasattr(args, "command") or args.command is None:
        raise KeyError("No command specified")
    spec = command_table.get(args.command)
    if spec is None:
        raise KeyError(f"Unknown command: {args.command}")
    return spec.execute(context, args)


def build_command_table(
    specs: Iterable[CommandSpec],
) -> MutableMapping[str, CommandSpec]:
    """Build an index of command specifications keyed by command name."""
    table: Dict[str, CommandSpec] = {}
    for spec in specs:
        if spec.name in table:
            raise ValueError(f"Duplicate command name: {spec.name}")
        table[spec.name] = spec
    return table


def translate_document(args: argparse.Namespace, document_id: str) -> WarehouseTicket:
    """Translate CLI args into a one-item warehouse document."""
    item = TicketItem(
        item_code=args.item_code,
        item_name=args.item_name,
        description=args.description,
        unit=args.unit,
        manufacturer=args.manufacturer,
        country=args.country,
        model_serial=args.model_serial,
        warranty_date=args.warranty,
        quantity=args.quantity,
        unit_price=parse_locale_number(args.unit_price),
        note=args.note,
    )
    return WarehouseTicket(
        document_class=DocumentClass(args.document_class),
        document_id=document_id.strip().upper(),
        document_date=args.document_date or date.today().isoformat(),
        partner=args.partner,
        department=args.department,
        items=(item,),
    )


def run_record_document(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Record a ``receive``/``issue`` document, allocating its number if needed."""
    document_class = DocumentClass(args.document_class)
    document_id = args.document_id or core_logic.next_document_number(context, document_class)
    ticket = translate_document(args, document_id)
    rows = core_logic.record_ticket(context, ticket)
    print(f"Recorded {ticket.document_id}: {len(rows)} item(s), total {format_locale_number(ticket.total_amount) or '0'}")
    return 0


def run_stock_report(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print stock, last unit price and last warranty per item key."""
    snapshot = core_logic.build_snapshot(context)
    for key, quantity in ledger.stock_report(snapshot).items():
        marker = "  (!)" if quantity < 0 else ""
        price = format_locale_number(snapshot.last_unit_price.get(key)) or "-"
        warranty = snapshot.last_warranty.get(key) or "-"
        print(f"{key}\t{quantity:g}\t{price}\t{warranty}{marker}")
    return 0


def run_next_id(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    print(core_logic.next_document_number(context, DocumentClass(args.document_class)))
    return 0


def run_items(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print catalog and ledger items; issue forms only list items in stock."""
    document_class = DocumentClass(args.document_class)
    snapshot = core_logic.build_snapshot(context)
    for item in core_logic.list_available_items(context, document_class):
        quantity = snapshot.stock_for(item.item_code, item.item_name)
        print(f"{item.item_code or '-'}\t{item.item_name}\t{item.unit}\t{quantity:g}")
    return 0


def run_show_ticket(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print a recorded document, its total in words and its voucher link."""
    ticket = core_logic.load_ticket(context, args.document_id)
    print(f"{ticket.document_id} | {ticket.document_class.label} | {ticket.document_date} | {ticket.partner}")
    for index, item in enumerate(ticket.items, start=1):
        print(
            f"{index}. {item.item_name}\t{item.quantity:g} {item.unit}\t"
            f"{format_locale_number(item.unit_price) or '0'}\t{format_locale_number(item.line_total) or '0'}"
        )
    print(f"Total: {format_locale_number(ticket.total_amount) or '0'}")
    print(amount_to_words(ticket.total_amount))
    print(voucher_file_name(ticket))
    link = core_logic.document_folder_link(context.settings, ticket.document_id)
    if link:
        print(link)
    return 0


def run_labels(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print label payloads for one document, or the list of document ids."""
    all_labels = list(labels.build_labels(core_logic.list_transactions(context)))
    if not args.document_id:
        for document_id in labels.document_ids(all_labels):
            print(document_id)
        return 0
    selected = labels.labels_for_document(all_labels, args.document_id.strip().upper())
    if not selected:
        raise core_logic.MissingReferenceError(f"Unknown document id: {args.document_id}")
    for label in selected:
        print(label.payload)
        print("-" * 40)
    return 0


def run_lookup(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    for row in reports.search_rows(core_logic.list_transactions(context), args.term, limit=args.limit):
        print(f"{row.document_id}\t{row.item_name}\t{row.model_serial}\t{row.department}\t{row.document_date}")
    return 0


def run_summary(context: core_logic.RuntimeContext, args: argparse.Namespace) -> int:
    """Print the dashboard figures."""
    stats = reports.summarize_ledger(core_logic.list_transactions(context))
    print(f"Devices: {stats.total_rows}  Documents: {stats.unique_documents}  "
          f"Departments: {stats.unique_departments}  Partners: {stats.unique_partners}")
    for activity in stats.recent_activity:
        extra = f" (+{activity.remaining})" if activity.remaining else ""
        print(f"{activity.document_id}\t{activity.document_date}\t{', '.join(activity.items)}{extra}")
    for department, count in stats.top_departments:
        print(f"{department}\t{count}")
    for item in stats.top_items:
        print(f"{item.item_name}\t{item.quantity:g}\t{format_locale_number(item.total_money) or '-'}")
    return 0


def run_words(context: Optional[core_logic.RuntimeContext], args: argparse.Namespace) -> int:
    print(amount_to_words(parse_locale_number(args.amount)))
    return 0


def handle_cli_error(error: Exception) -> int:
    """Convert raised exceptions into user-friendly exit codes."""
    if isinstance(error, core_logic.BusinessRuleViolation):
        log.error("%s", error)
        return 2
    if isinstance(error, FileNotFoundError):
        log.error("%s", error)
        return 3
    log.error("%s", error)
    return 1


def persist_workbook(context: core_logic.RuntimeContext) -> None:
    """Persist workbook changes after a successful write command."""
    try:
        core_logic.persist_context(context)
    except PermissionError as error:
        raise RuntimeError(str(error)) from error


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point that orchestrates parsing and execution."""
    parser = build_parser()
    command_table = configure_subcommands(parser)
    args = parser.parse_args(argv)
    spec = command_table[args.command]
    try:
        context = load_runtime_context(args.config) if spec.needs_context else None
        exit_code = dispatch_command(context, args, command_table)
        if exit_code == 0 and spec.mutates and context is not None:
            persist_workbook(context)
        return exit_code
    except Exception as error:  # pragma: no cover - centralised error handler tested separately
        return handle_cli_error(error)
