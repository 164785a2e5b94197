import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import colorlog

from es_cursor.core.config import (
    DEFAULT_CONTINUATION_SCROLL_TTL,
    DEFAULT_INITIAL_SCROLL_TTL,
    DEFAULT_PAGE_SIZE,
    ScrollSettings,
)
from es_cursor.core.enums import ColumnType
from es_cursor.core.errors import BackendError, ParseError, ProjectionCollision
from es_cursor.core.models import ColumnHandle
from es_cursor.sources.registry import ClientRegistry, SourceRegistry

try:
    from es_cursor import __version__ as _PACKAGE_VERSION
except ImportError:  # pragma: no cover
    _PACKAGE_VERSION = "unknown"  # type: ignore[assignment]


DEFAULT_CATALOG = Path("config/catalog.yaml")

# Accepted spellings for --column types
_TYPE_ALIASES = {
    "boolean": ColumnType.BOOLEAN,
    "bool": ColumnType.BOOLEAN,
    "bigint": ColumnType.BIGINT,
    "long": ColumnType.BIGINT,
    "integer": ColumnType.BIGINT,
    "int": ColumnType.BIGINT,
    "double": ColumnType.DOUBLE,
    "float": ColumnType.DOUBLE,
    "varchar": ColumnType.VARCHAR,
    "text": ColumnType.VARCHAR,
    "string": ColumnType.VARCHAR,
}


def setup_logging(
    verbose: bool = False, warnings_only: bool = False, errors_only: bool = False
) -> None:
    logger = logging.getLogger()
    for h in list(logger.handlers):
        logger.removeHandler(h)
    log_format = (
        "%(asctime)s:%(levelname)s:%(name)s in %(filename)s:%(funcName)s:%(lineno)d: %(message)s"
    )
    log_colors = {
        "DEBUG": "cyan",
        "INFO": "green",
        "WARNING": "yellow",
        "ERROR": "red",
        "CRITICAL": "bold_red",
    }
    # stdout carries dumped rows, so logs go to stderr
    stream_handler = colorlog.StreamHandler(sys.stderr)
    formatter = colorlog.ColoredFormatter(f"%(log_color)s{log_format}", log_colors=log_colors)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)
    if errors_only:
        logger.setLevel(logging.ERROR)
    elif warnings_only:
        logger.setLevel(logging.WARNING)
    else:
        logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def parse_column_arg(spec: str) -> ColumnHandle:
    """Parse a ``name:path:type`` column argument.

    The path may be omitted (``name::type`` or ``name:type``) to read the field
    named like the column.

    Examples:
        >>> parse_column_arg("age:person.age:bigint")
        ColumnHandle(name='age', json_path='person.age', column_type=<ColumnType.BIGINT: 'bigint'>)
    """
    parts = spec.split(":")
    if len(parts) == 2:
        name, path, type_name = parts[0], "", parts[1]
    elif len(parts) == 3:
        name, path, type_name = parts
    else:
        raise ValueError(f"Invalid column '{spec}'. Expected name:path:type")
    name = name.strip()
    if not name:
        raise ValueError(f"Invalid column '{spec}': empty name")
    column_type = _TYPE_ALIASES.get(type_name.strip().lower())
    if column_type is None:
        raise ValueError(
            f"Invalid column '{spec}': unknown type '{type_name}'. "
            f"Valid types: {', '.join(sorted(_TYPE_ALIASES))}"
        )
    return ColumnHandle(name=name, json_path=path.strip() or name, column_type=column_type)


def _load_sources(args: argparse.Namespace) -> Optional[SourceRegistry]:
    config_path = Path(getattr(args, "config", None) or DEFAULT_CATALOG)
    try:
        return SourceRegistry(config_path)
    except FileNotFoundError as e:
        logging.error("%s", e)
    except (ValueError, TypeError) as e:
        logging.error("Invalid catalog %s: %s", config_path, e)
    return None


def cmd_tables(args: argparse.Namespace) -> int:
    """List tables configured in the catalog."""
    sources = _load_sources(args)
    if sources is None:
        return 2
    names = sources.table_names()
    if not names:
        logging.warning("No tables configured in %s", sources.catalog_file)
    for name in names:
        t = sources.table(name)
        print(f"{name}\t{t.cluster_name}\t{t.index}\t{t.type_name}")
    return 0


def cmd_indices(args: argparse.Namespace) -> int:
    """Print the physical indices backing a configured table."""
    from es_cursor.core.query.indices import fetch_indices

    sources = _load_sources(args)
    if sources is None:
        return 2
    try:
        table = sources.table(args.table)
    except KeyError as e:
        logging.error("%s. Known tables: %s", e.args[0], ", ".join(sources.table_names()))
        return 2

    clients = ClientRegistry(sources)
    try:
        indices = fetch_indices(clients.get(table.cluster_name), table.type_name)
    except BackendError as e:
        logging.error("Failed to resolve indices for %s: %s", args.table, e)
        return 1
    finally:
        clients.close()

    for name in indices:
        print(name)
    return 0


def cmd_dump(args: argparse.Namespace) -> int:
    """Read a table through a record cursor and write it as CSV or NDJSON.

    Returns:
        0 on success
        1 if the backend failed or a stored value does not parse as its column type
        2 on usage or configuration errors
    """
    from es_cursor.core.query.cursor import RecordCursor
    from es_cursor.core.query.materialize import collect_frame

    sources = _load_sources(args)
    if sources is None:
        return 2
    try:
        table = sources.table(args.table)
    except KeyError as e:
        logging.error("%s. Known tables: %s", e.args[0], ", ".join(sources.table_names()))
        return 2

    if not args.column:
        logging.error("At least one --column is required")
        return 2
    try:
        columns: List[ColumnHandle] = [parse_column_arg(c) for c in args.column]
        settings = ScrollSettings(
            page_size=args.page_size,
            initial_scroll_ttl=args.initial_ttl,
            continuation_scroll_ttl=args.continuation_ttl,
        )
    except ValueError as e:
        logging.error("%s", e)
        return 2

    clients = ClientRegistry(sources)
    try:
        with RecordCursor(
            columns,
            table,
            clients.get(table.cluster_name),
            settings=settings,
            on_collision="error" if args.strict_columns else "last",
        ) as cursor:
            df = collect_frame(cursor, limit=args.limit, progress=bool(args.progress))
            logging.info(
                "Read %d rows from %s (%d indices)", df.height, args.table, len(cursor.indices)
            )
    except ProjectionCollision as e:
        logging.error("%s", e)
        return 2
    except BackendError as e:
        logging.error("Failed reading %s: %s", args.table, e)
        return 1
    except ParseError as e:
        logging.error("Malformed value in %s: %s", args.table, e)
        return 1
    finally:
        clients.close()

    fmt = args.format
    if args.output:
        out_path = Path(args.output)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        if fmt == "ndjson":
            df.write_ndjson(out_path)
        else:
            df.write_csv(out_path)
        logging.info("Saved %s: %s", fmt.upper(), out_path)
    else:
        sys.stdout.write(df.write_ndjson() if fmt == "ndjson" else df.write_csv())
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="es-cursor", description="Read search-cluster tables through a typed record cursor"
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {_PACKAGE_VERSION}")
    p.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    p.add_argument(
        "--warnings-only", action="store_true", help="Only show warnings and errors"
    )
    p.add_argument("--errors-only", action="store_true", help="Only show errors")
    sub = p.add_subparsers(dest="command", required=True)

    def _add_config(sp: argparse.ArgumentParser) -> None:
        sp.add_argument(
            "--config",
            default=None,
            help=f"Path to catalog YAML with clusters and tables (defaults to {DEFAULT_CATALOG})",
        )

    p_tables = sub.add_parser("tables", help="List configured tables")
    _add_config(p_tables)
    p_tables.set_defaults(func=cmd_tables)

    p_indices = sub.add_parser("indices", help="Show the physical indices behind a table")
    _add_config(p_indices)
    p_indices.add_argument("--table", required=True, help="Configured table name")
    p_indices.set_defaults(func=cmd_indices)

    p_dump = sub.add_parser("dump", help="Read a table and write its rows")
    _add_config(p_dump)
    p_dump.add_argument("--table", required=True, help="Configured table name")
    p_dump.add_argument(
        "--column",
        action="append",
        default=[],
        help="Output column as name:path:type (repeatable; type is bigint, double, boolean or varchar)",
    )
    p_dump.add_argument(
        "--format", choices=["csv", "ndjson"], default="csv", help="Output format (default csv)"
    )
    p_dump.add_argument("--output", default=None, help="Write to this file instead of stdout")
    p_dump.add_argument("--limit", type=int, default=None, help="Stop after this many rows")
    p_dump.add_argument(
        "--page-size",
        type=int,
        default=DEFAULT_PAGE_SIZE,
        help=f"Hits per shard per scroll page (default {DEFAULT_PAGE_SIZE})",
    )
    p_dump.add_argument(
        "--initial-ttl",
        default=DEFAULT_INITIAL_SCROLL_TTL,
        help=f"Scroll TTL for the initial search (default {DEFAULT_INITIAL_SCROLL_TTL})",
    )
    p_dump.add_argument(
        "--continuation-ttl",
        default=DEFAULT_CONTINUATION_SCROLL_TTL,
        help=f"Scroll TTL for continuation pages (default {DEFAULT_CONTINUATION_SCROLL_TTL})",
    )
    p_dump.add_argument(
        "--strict-columns",
        action="store_true",
        help="Fail when two columns read the same source field",
    )
    p_dump.add_argument("--progress", action="store_true", help="Show a progress bar")
    p_dump.set_defaults(func=cmd_dump)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(
        verbose=bool(args.verbose),
        warnings_only=bool(getattr(args, "warnings_only", False)),
        errors_only=bool(getattr(args, "errors_only", False)),
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
