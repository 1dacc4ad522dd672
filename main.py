"""
Parameter Resolution Engine — Main CLI Entrypoint.

Wires the resolver layers from the environment and exposes a few commands:
- resolve: resolve one statement against a catalog schema
- run: interactive loop, one statement per line until 'exit'
- types / schemas: list registered handler types and catalog schemas
- fuzzy: show how the fuzzy matcher ranks candidates for some queries
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich import box

from conversation.gateway import ConsoleConversation, ConversationGateway, ScriptedConversation
from decoding.tagger import ensure_nltk_data
from handlers import build_default_registry
from matching.fuzzy import FuzzyMatcher
from registry.schema_catalog import SchemaCatalog
from resolution.engine import ResolutionEngine
from shared.errors import ConfigurationError, ResolutionError
from shared.settings import ResolverSettings

logger = logging.getLogger(__name__)

# ─── Rich Console ───────────────────────────────────────────────

console = Console()


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def load_settings(schema_file: str | None = None) -> ResolverSettings:
    settings = ResolverSettings.from_env()
    if schema_file:
        settings = settings.model_copy(update={"schema_file": schema_file, "schema_catalog_json": None})
    return settings


def build_engine(
    settings: ResolverSettings, conversation: ConversationGateway | None = None
) -> ResolutionEngine:
    if not ensure_nltk_data():
        logger.warning("NLTK tagger model is unavailable; noun and number extraction will fail.")
    return ResolutionEngine.from_settings(settings, conversation=conversation)


def check_suppliers(engine: ResolutionEngine, schema_name: str) -> None:
    """Fail early when the schema names value suppliers nobody registered.

    Suppliers are Python callables registered through SupplierRegistry in code;
    the CLI registers none, so such schemas can only be resolved from a program.
    """
    missing = [
        slot.value_supplier
        for slot in engine.schema_catalog.slots(schema_name)
        if slot.value_supplier and engine.suppliers.resolve(slot.value_supplier) is None
    ]
    if missing:
        raise ConfigurationError(
            f"Schema {schema_name} needs value suppliers that are not registered: "
            f"{', '.join(missing)}. Register them with SupplierRegistry and call ResolutionEngine from code."
        )


def _parse_context(raw: str | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def render_result(schema_name: str, values: dict[str, str], engine: ResolutionEngine) -> None:
    table = Table(title=f"Parameters — {schema_name}", box=box.ROUNDED)
    table.add_column("Parameter", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Required", style="dim")
    table.add_column("Value", style="green")

    for slot in engine.schema_catalog.slots(schema_name):
        value = values.get(slot.name)
        table.add_row(
            slot.display_name,
            slot.type,
            "yes" if slot.required else "no",
            value if value is not None else "[dim]—[/dim]",
        )
    console.print(table)


# ─── Commands ───────────────────────────────────────────────────

async def resolve_once(
    settings: ResolverSettings,
    schema_name: str,
    statement: str,
    replies: list[str] | None = None,
    context: Any = None,
) -> dict[str, str]:
    conversation: ConversationGateway
    if replies is not None:
        conversation = ScriptedConversation(replies)
    else:
        conversation = ConsoleConversation(console)
    engine = build_engine(settings, conversation)
    check_suppliers(engine, schema_name)
    values = await engine.resolve(statement, schema_name, context=context)
    render_result(schema_name, values, engine)
    return values


async def run_resolver_loop(settings: ResolverSettings, schema_name: str) -> None:
    """Interactive Resolver Loop."""
    console.print(Panel(
        Text.from_markup(
            "[bold cyan]Parameter Resolution Engine[/bold cyan]\n"
            f"[dim]Schema: {schema_name}[/dim]\n"
            "[dim]Type a statement or 'exit' to quit[/dim]"
        ),
        title="🧩",
        border_style="cyan",
        box=box.DOUBLE,
    ))

    engine = build_engine(settings, ConsoleConversation(console))
    check_suppliers(engine, schema_name)

    while True:
        try:
            raw_input = await asyncio.to_thread(console.input, "[bold cyan]Statement → [/]")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[dim]Goodbye! 👋[/dim]")
            break

        statement = raw_input.strip()
        if statement.lower() in ("exit", "quit", "q"):
            console.print("[dim]Goodbye! 👋[/dim]")
            break
        if not statement:
            continue

        try:
            values = await engine.resolve(statement, schema_name)
        except ResolutionError as e:
            console.print(f"[bold red]Resolution failed:[/] {e}")
            continue
        render_result(schema_name, values, engine)


def list_types() -> None:
    registry = build_default_registry()
    table = Table(title="Registered Parameter Types")
    table.add_column("Type", style="cyan")
    table.add_column("Handler", style="magenta")
    table.add_column("Candidates", style="green")
    table.add_column("Fuzzy by default", style="dim")
    table.add_column("Free text", style="dim")

    for type_name in registry.registered_types:
        handler = registry.require(type_name)
        table.add_row(
            type_name,
            type(handler).__name__,
            str(registry.supports_candidates(type_name)),
            str(bool(getattr(handler, "fuzzy_by_default", False))),
            str(bool(getattr(handler, "accepts_free_text", False))),
        )
    console.print(table)


def list_schemas(settings: ResolverSettings) -> None:
    catalog = SchemaCatalog.from_settings(settings)
    if not catalog.schema_names:
        console.print("[bold yellow]No schemas configured.[/] Set SCHEMA_FILE or SCHEMA_CATALOG_JSON.")
        return

    table = Table(title="Schemas")
    table.add_column("Name", style="cyan")
    table.add_column("Parameters", style="magenta")
    table.add_column("Seed texts", style="dim")
    for name in catalog.schema_names:
        schema = catalog.resolve_schema(name)
        params = ", ".join(f"{p.name}:{p.type}" for p in schema.parameters)
        table.add_row(name, params, str(len(schema.seed_texts)))
    console.print(table)


def show_fuzzy(settings: ResolverSettings, queries: list[str], candidates: list[str]) -> list[str]:
    matcher = FuzzyMatcher.from_settings(settings)
    table = Table(title="Fuzzy Scores (lower is better)")
    table.add_column("Query", style="cyan")
    table.add_column("Candidate", style="magenta")
    table.add_column("Score", style="green")
    for query in queries:
        for candidate in candidates:
            score = matcher.score(query, candidate)
            table.add_row(query, candidate, "—" if score is None else f"{score:.3f}")
    console.print(table)

    best = matcher.match(queries, candidates)
    console.print(f"[bold]Best matches:[/] {best}")
    return best


def main(argv: list[str] | None = None) -> int:
    """Entrypoint with CLI args."""
    parser = argparse.ArgumentParser(description="Parameter Resolution Engine")
    parser.add_argument("--schema-file", default=None, help="JSON schema catalog (overrides SCHEMA_FILE)")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve one statement",
        description="Resolve one statement. Schemas whose slots use an entityfunction need suppliers "
        "registered in code and are rejected here.",
    )
    resolve_parser.add_argument("schema", help="Schema name")
    resolve_parser.add_argument("statement", help="Natural-language statement")
    resolve_parser.add_argument(
        "--reply",
        action="append",
        default=None,
        help="Scripted reply to a prompt (repeatable); omit to answer interactively",
    )
    resolve_parser.add_argument("--context", default=None, help="Context for value suppliers (JSON or text)")

    run_parser = subparsers.add_parser(
        "run",
        help="Run interactive resolver loop",
        description="Interactive loop. Schemas whose slots use an entityfunction are rejected here.",
    )
    run_parser.add_argument("schema", help="Schema name")

    subparsers.add_parser("types", help="List registered parameter types")
    subparsers.add_parser("schemas", help="List catalog schemas")

    fuzzy_parser = subparsers.add_parser("fuzzy", help="Rank candidates for some queries")
    fuzzy_parser.add_argument("--query", "-q", action="append", required=True, help="Query (repeatable)")
    fuzzy_parser.add_argument("--candidate", "-c", action="append", required=True, help="Candidate (repeatable)")

    args = parser.parse_args(argv)

    settings = load_settings(args.schema_file)
    setup_logging(settings.log_level)

    try:
        if args.command == "resolve":
            asyncio.run(
                resolve_once(
                    settings,
                    args.schema,
                    args.statement,
                    replies=args.reply,
                    context=_parse_context(args.context),
                )
            )
        elif args.command == "run":
            asyncio.run(run_resolver_loop(settings, args.schema))
        elif args.command == "types":
            list_types()
        elif args.command == "schemas":
            list_schemas(settings)
        elif args.command == "fuzzy":
            show_fuzzy(settings, args.query, args.candidate)
        else:
            parser.print_help()
    except ResolutionError as e:
        console.print(f"[bold red]Error:[/] {e}")
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
