# main.py

"""Entry point for the storefront headless CLI."""

import argparse
import asyncio
import logging
import sys

from storefront.config.logging_config import setup_logging

logger = logging.getLogger("storefront.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    from storefront.cli.runner import SORT_CHOICES

    parser = argparse.ArgumentParser(
        prog="storefront",
        description="Browse the product catalog, cart and favorites.",
    )
    parser.add_argument(
        "-p",
        "--pages",
        type=int,
        default=1,
        help="Number of catalog pages to load (default: 1).",
    )
    parser.add_argument(
        "-q",
        "--search",
        default="",
        help="Case-insensitive product name search.",
    )
    parser.add_argument(
        "-b",
        "--brand",
        action="append",
        default=[],
        dest="brands",
        help="Keep only this brand (repeatable).",
    )
    parser.add_argument(
        "-m",
        "--model",
        action="append",
        default=[],
        dest="models",
        help="Keep only this model (repeatable).",
    )
    parser.add_argument(
        "--sort",
        choices=sorted(SORT_CHOICES),
        default="old_to_new",
        help="Sort order (default: old_to_new).",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="table",
        dest="output_format",
        help="Output format (default: table).",
    )
    parser.add_argument(
        "--add-to-cart",
        default=None,
        metavar="ID",
        help="Add the product with this id to the cart.",
    )
    parser.add_argument(
        "--qty",
        type=int,
        default=1,
        help="Quantity for --add-to-cart (default: 1).",
    )
    parser.add_argument(
        "--toggle-favorite",
        default=None,
        metavar="ID",
        help="Add or remove the product with this id from favorites.",
    )
    parser.add_argument(
        "--list-options",
        nargs="?",
        const="",
        default=None,
        metavar="TEXT",
        help="List brand and model filter choices, optionally narrowed.",
    )
    parser.add_argument(
        "--cart",
        action="store_true",
        default=False,
        help="Show the cart.",
    )
    parser.add_argument(
        "--favorites",
        action="store_true",
        default=False,
        help="Show favorite products.",
    )
    return parser


async def _dispatch(args: argparse.Namespace) -> int:
    """Run the command selected by *args* and return an exit code."""
    from storefront.cli import runner

    services = runner.Services.create()
    if args.add_to_cart is not None:
        if args.qty < 1:
            logger.warning("Rejected non-positive quantity %d", args.qty)
            return 2
        return await runner.add_to_cart(services, args.add_to_cart, args.qty)
    if args.toggle_favorite is not None:
        return await runner.toggle_favorite(services, args.toggle_favorite)
    if args.cart:
        return await runner.show_cart(services, args.output_format)
    if args.favorites:
        return await runner.show_favorites(services, args.output_format)
    request = runner.CatalogRequest(
        pages=args.pages,
        search=args.search,
        brands=args.brands,
        models=args.models,
        sort=args.sort,
        output_format=args.output_format,
    )
    if args.list_options is not None:
        return await runner.list_options(
            services, request, args.list_options,
        )
    return await runner.list_catalog(services, request)


def main() -> None:
    """Parse arguments and run the selected command."""
    log_file = setup_logging()
    logger.info("storefront starting, log file: %s", log_file)

    args = _build_parser().parse_args()
    try:
        exit_code = asyncio.run(_dispatch(args))
    except Exception:
        logger.critical("Fatal error during CLI run", exc_info=True)
        raise
    finally:
        logger.info("storefront shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
