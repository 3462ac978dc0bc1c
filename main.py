# main.py

"""Entry point for the wishmatch command-line tool."""

import argparse
import asyncio
import logging
import sys

from wishmatch.config.logging_config import setup_logging
from wishmatch.config.settings import Settings

logger = logging.getLogger("wishmatch.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="wishmatch",
        description=(
            "Build a product catalog from Amazon wishlists and product "
            "links, and find the same products on noon.com."
        ),
    )
    parser.add_argument(
        "--show-log",
        type=int,
        default=0,
        metavar="N",
        dest="show_log",
        help="After the command, print the newest N parser log entries.",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        default=False,
        dest="log_json",
        help="Print the --show-log entries as JSON instead of a table.",
    )
    parser.add_argument(
        "--clear-log",
        action="store_true",
        default=False,
        dest="clear_log",
        help="Empty the parser log once the command has finished.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    parse_cmd = sub.add_parser(
        "parse", help="Extract products from wishlist or product URLs."
    )
    parse_cmd.add_argument(
        "urls",
        nargs="+",
        help=f"Up to {Settings.MAX_INPUT_URLS} wishlist/product/short URLs.",
    )
    parse_cmd.add_argument(
        "--placeholders",
        action="store_true",
        default=False,
        help="Emit an error item for every URL that could not be read.",
    )
    parse_cmd.add_argument(
        "--match",
        action="store_true",
        default=False,
        dest="match_alternates",
        help="Look every product up on noon.com as well.",
    )
    parse_cmd.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parse_cmd.add_argument(
        "-o",
        "--output",
        default=None,
        dest="output_dir",
        help="Custom output directory (default: results/).",
    )

    match_cmd = sub.add_parser(
        "match", help="Find the best noon.com match for a product title."
    )
    match_cmd.add_argument("title", help="Reference product title.")
    match_cmd.add_argument(
        "--price",
        default=None,
        help='Reference price, e.g. "199.00 AED".',
    )
    match_cmd.add_argument(
        "--min-score",
        type=int,
        default=None,
        dest="min_score",
        help=f"Acceptance threshold (default: {Settings.MATCH_MIN_SCORE}).",
    )

    noon_cmd = sub.add_parser(
        "noon-product", help="Parse a single noon.com product page."
    )
    noon_cmd.add_argument("url")

    resolve_cmd = sub.add_parser(
        "resolve", help="Expand a short link to its canonical URL."
    )
    resolve_cmd.add_argument("url")

    images_cmd = sub.add_parser(
        "images", help="List the gallery image URLs of a product page."
    )
    images_cmd.add_argument("url")
    return parser


def _run(args: argparse.Namespace) -> int:
    from wishmatch.cli import runner

    if args.command == "parse":
        return asyncio.run(
            runner.cli_parse(
                urls=args.urls,
                placeholders=args.placeholders,
                match_alternates=args.match_alternates,
                output_format=args.output_format,
                output_dir=args.output_dir,
            )
        )
    if args.command == "match":
        return runner.cli_match(args.title, args.price, args.min_score)
    if args.command == "noon-product":
        return runner.cli_noon_product(args.url)
    if args.command == "images":
        return runner.cli_images(args.url)
    return runner.cli_resolve(args.url)


def main() -> None:
    """Parse arguments and dispatch to the requested command."""
    log_file = setup_logging()
    logger.info("wishmatch starting, log file: %s", log_file)

    parser = _build_parser()
    args = parser.parse_args()

    try:
        exit_code = _run(args)
    except Exception:
        logger.critical("Fatal error during %s", args.command, exc_info=True)
        raise
    finally:
        if args.show_log > 0:
            from wishmatch.cli.runner import print_parser_log

            print_parser_log(args.show_log, as_json=args.log_json)
        if args.clear_log:
            from wishmatch.cli.runner import clear_parser_log

            clear_parser_log()
        logger.info("wishmatch shutting down")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
