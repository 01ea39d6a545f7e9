from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from mapcheck.config.loader import ConfigError, default_config, load_config, resolve_config_path
from mapcheck.db.store import ProductStore, StoreError
from mapcheck.feeds.fetch import fetch_feed_text
from mapcheck.feeds.reader import (
    PriceFileError,
    header_preview,
    parse_feed_text,
    read_price_file,
    split_header,
)
from mapcheck.logging.init import log_summary, setup_logging
from mapcheck.logging.run_log import RunLog
from mapcheck.models.config_models import AppConfig
from mapcheck.services.export import EXPORT_FORMATS, ExportError, default_filename, export_products
from mapcheck.services.importer import ImportAbortedError, run_import
from mapcheck.services.query import ProductFilter, filter_products, join_annotations, sort_products
from mapcheck.services.reconcile import reconcile
from mapcheck.services.summary import (
    catalog_stats,
    price_check_stats,
    render_check_summary_line,
)

"""CLI entrypoint.

Subcommands:
- import       full refresh of the product store from every enabled source
- check FILE   compare an uploaded price file against stored MAP data
- clear-check  drop the annotations of the last check
- stats        catalog and price check statistics
- list         filtered, sorted product listing
- export       filtered products to CSV (default or rics layout)
- edit         change one field of one stored product
- inspect      fetch each enabled source and print its header row and first rows

Exit codes: 0 success, 2 at least one source failed, 1 fatal.
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


def _load_env_file(path: Path, override: bool = False) -> None:
    """Load ``.env`` (MAPCHECK_CONFIG, MAPCHECK_DB_PATH...) if present."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--search", default="", help="Substring of SKU or product name")
    p.add_argument("--brand", help="Exact brand (source display name)")
    p.add_argument("--category", help="Exact category")
    p.add_argument("--map-only", action="store_true", help="Only products with a MAP price")
    p.add_argument("--violations-only", action="store_true", help="Only price check violations")
    p.add_argument("--checked-only", action="store_true", help="Only products matched by the last check")
    p.add_argument("--min-price", type=float)
    p.add_argument("--max-price", type=float)
    p.add_argument("--sort", help="Sort field (sku, productName, brand, price, difference...)")
    p.add_argument("--desc", action="store_true", help="Sort descending")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="mapcheck", description="MAP price compliance checker")
    p.add_argument("--config", help="Settings file (default: $MAPCHECK_CONFIG or config/mapcheck.yml)")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Re-import every enabled source")
    imp.add_argument("--no-progress", action="store_true", help="Disable the progress bar")

    chk = sub.add_parser("check", help="Check an uploaded price file (CSV or XLSX)")
    chk.add_argument("file", type=Path)
    chk.add_argument("--delimiter", default=",")

    sub.add_parser("clear-check", help="Clear the last price check")
    sub.add_parser("stats", help="Show catalog and price check statistics")

    lst = sub.add_parser("list", help="List products")
    _add_filter_args(lst)
    lst.add_argument("--limit", type=int, default=50)

    exp = sub.add_parser("export", help="Export products to CSV")
    _add_filter_args(exp)
    exp.add_argument("--format", choices=EXPORT_FORMATS, default="default")
    exp.add_argument("--output", type=Path)

    edit = sub.add_parser("edit", help="Edit one field of a product")
    edit.add_argument("product_id", type=int)
    edit.add_argument("field")
    edit.add_argument("value")

    sub.add_parser("inspect", help="Print header row and first data rows of each source")
    return p.parse_args(argv)


def _filter_from_args(args: argparse.Namespace) -> ProductFilter:
    return ProductFilter(
        search=args.search,
        brand=args.brand,
        category=args.category,
        map_only=args.map_only,
        violations_only=args.violations_only,
        min_price=args.min_price,
        max_price=args.max_price,
    )


def _select(store: ProductStore, args: argparse.Namespace) -> list[Any]:
    views = join_annotations(
        store.get_all(), store.get_annotations(), checked_only=args.checked_only
    )
    views = filter_products(views, _filter_from_args(args))
    if args.sort:
        views = sort_products(views, args.sort, descending=args.desc)
    return views


def _cmd_import(cfg: AppConfig, store: ProductStore, args: argparse.Namespace, logger: logging.Logger) -> int:
    run_log = RunLog(logger, logs_dir=Path(cfg.logs_directory))
    try:
        result = run_import(
            cfg.sources,
            store,
            run_log=run_log,
            proxy_prefix=cfg.proxy_prefix,
            progress=not args.no_progress,
        )
    except ImportAbortedError as e:
        logger.error(f"import aborted: {e}")
        return EXIT_FATAL
    finally:
        run_log.flush()

    if result.failed > 0:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def _cmd_check(cfg: AppConfig, store: ProductStore, args: argparse.Namespace, logger: logging.Logger) -> int:
    run_log = RunLog(logger, logs_dir=Path(cfg.logs_directory))
    try:
        run_log.info(f"Parsing price file: {args.file.name}")
        try:
            rows = read_price_file(args.file, delimiter=args.delimiter)
        except PriceFileError as e:
            run_log.error(f"Error parsing price file: {e}")
            return EXIT_FATAL

        products = store.get_all()
        result = reconcile(rows, cfg.upload_column_mapping, products)
        store.replace_annotations(result.annotations.values())
        run_log.success(
            f"Compliance check complete. Matched {len(result.annotations)} SKUs. "
            f"Found {result.violation_count} violations."
        )
        stats = price_check_stats(products, result.annotations)
        log_summary(render_check_summary_line(result.rows_read, stats).removeprefix("SUMMARY "))
    finally:
        run_log.flush()
    return EXIT_SUCCESS_ALL


def _cmd_clear_check(store: ProductStore, logger: logging.Logger) -> int:
    removed = store.clear_annotations()
    logger.info(f"Cleared price check data ({removed} annotations).")
    return EXIT_SUCCESS_ALL


def _cmd_stats(store: ProductStore) -> int:
    products = store.get_all()
    annotations = store.get_annotations()
    cs = catalog_stats(products, annotations)
    print(f"total_skus={cs.total_records} map_violations={cs.violation_count}")
    for b in cs.brand_breakdown:
        print(f"  {b.name}: {b.count}")
    if annotations:
        ps = price_check_stats(products, annotations)
        print(
            f"products_checked={ps.products_checked} violations={ps.violation_count} "
            f"savings_at_risk={ps.savings_at_risk:.2f}"
        )
        for b in ps.brands_affected:
            print(f"  {b.name}: {b.count}")
    return EXIT_SUCCESS_ALL


def _fmt(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, float):
        return f"{value:.2f}"
    return str(value)


def _cmd_list(store: ProductStore, args: argparse.Namespace) -> int:
    views = _select(store, args)
    for v in views[: args.limit] if args.limit > 0 else views:
        p = v.product
        status = ""
        if v.annotation is not None:
            status = "VIOLATION" if v.annotation.is_violation else "OK"
        print(
            "\t".join(
                [str(p.id), p.sku, p.brand, _fmt(p.price), _fmt(p.product_name), _fmt(p.color), status]
            ).rstrip()
        )
    print(f"{len(views)} products")
    return EXIT_SUCCESS_ALL


def _cmd_export(store: ProductStore, args: argparse.Namespace, logger: logging.Logger) -> int:
    views = _select(store, args)
    output = args.output or Path(default_filename(args.format))
    try:
        count = export_products(views, output, fmt=args.format)
    except ExportError as e:
        logger.error(str(e))
        return EXIT_FATAL
    logger.info(f"Exported {count} products as {args.format} to {output}.")
    return EXIT_SUCCESS_ALL


def _parse_edit_value(field: str, raw: str) -> Any:
    if "price" in field.lower() or field == "tolerance":
        if raw == "":
            return None
        return float(raw)
    return raw


def _cmd_edit(store: ProductStore, args: argparse.Namespace, logger: logging.Logger) -> int:
    try:
        value = _parse_edit_value(args.field, args.value)
        updated = store.update_field(args.product_id, args.field, value)
    except KeyError:
        logger.error(f"product not found: {args.product_id}")
        return EXIT_FATAL
    except ValueError as e:
        logger.error(f"edit: {e}")
        return EXIT_FATAL
    logger.info(f"Updated product {updated.id} ({updated.sku}): {args.field}={args.value}")
    return EXIT_SUCCESS_ALL


def _inspect_sources(cfg: AppConfig) -> int:
    failed = 0
    for source in cfg.enabled_sources:
        print(f"SOURCE: {source.id} ({source.name}) header_row={source.header_row}")
        try:
            text = fetch_feed_text(source.url or "", proxy_prefix=cfg.proxy_prefix)
            sheet = split_header(parse_feed_text(text, source.delimiter), source.header_row)
        except Exception as e:
            print(f"  error: {e}")
            failed += 1
            continue
        print(f"  header: {header_preview(sheet.header)}")
        for row in sheet.rows[:INSPECT_SAMPLE_ROWS]:
            print(f"  row: {header_preview(row)}")
    return EXIT_PARTIAL_FAILURE if failed else EXIT_SUCCESS_ALL


def _load(args: argparse.Namespace) -> AppConfig:
    path = resolve_config_path(args.config)
    if path is None:
        return default_config()
    return load_config(path)


def main(argv: list[str] | None = None) -> int:
    # Only read sys.argv when no list is given; [] must stay empty under pytest
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging()
    if args.debug:
        for h in logger.handlers:
            h.setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
        logger.debug("debug mode enabled")

    _load_env_file(Path(".env"))
    try:
        cfg = _load(args)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "inspect":
        return _inspect_sources(cfg)

    try:
        with ProductStore(cfg.store.path) as store:
            if args.command == "import":
                return _cmd_import(cfg, store, args, logger)
            if args.command == "check":
                return _cmd_check(cfg, store, args, logger)
            if args.command == "clear-check":
                return _cmd_clear_check(store, logger)
            if args.command == "stats":
                return _cmd_stats(store)
            if args.command == "list":
                return _cmd_list(store, args)
            if args.command == "export":
                return _cmd_export(store, args, logger)
            if args.command == "edit":
                return _cmd_edit(store, args, logger)
    except StoreError as e:
        logger.error(f"store: {e}")
        return EXIT_FATAL
    return EXIT_FATAL


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
