from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence, TextIO

from .aggregator import ListAggregator
from .config import ParserConfig, ValidationConfig
from .email_utils import canonicalize, parse_email_list
from .models import ListOrder
from .parser import parse_address
from .settings import Settings, load_settings

logger = logging.getLogger(__name__)

LIST_COMMANDS = ("validate", "dedupe", "domains", "top-domains", "addresses")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"{value!r} must be at least 1")
    return number


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    """Return the argument parser, with defaults taken from settings."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=settings.rules == "strict",
        help="Accept everything RFC5322 allows (quotes, comments, IP literals); "
        "--no-strict forces the generic rules",
    )
    common.add_argument(
        "--ignore-case",
        action="store_true",
        help="Compare local parts case-insensitively",
    )
    common.add_argument(
        "--keep-sub-addresses",
        action="store_true",
        help="Keep +tag sub-addresses in canonical addresses",
    )
    common.add_argument(
        "--include-comments",
        action="store_true",
        help="Keep (comments) in canonical addresses",
    )

    lists = argparse.ArgumentParser(add_help=False)
    lists.add_argument(
        "files",
        nargs="*",
        help="Files with one address per line; stdin when omitted or '-'",
    )
    lists.add_argument(
        "--split",
        action="store_true",
        help="Split lines on commas and semicolons as well",
    )
    lists.add_argument(
        "--order",
        choices=[order.value for order in ListOrder],
        default=settings.order.value,
        help="Result ordering",
    )
    lists.add_argument(
        "--max-results",
        type=_positive_int,
        default=settings.max_results,
        help="Cap results (occurrence ordering only)",
    )
    lists.add_argument(
        "--workers",
        type=_positive_int,
        default=settings.workers,
        help="Worker threads; parsing is CPU-bound, so more threads do not speed it up",
    )
    lists.add_argument(
        "--chunk-size",
        type=_positive_int,
        default=settings.chunk_size,
        help="Addresses per worker chunk",
    )
    lists.add_argument(
        "--progress",
        action="store_true",
        help="Show a progress bar",
    )

    parser = argparse.ArgumentParser(
        prog="emailsift",
        description="Validate, canonicalize and analyse email addresses",
    )
    commands = parser.add_subparsers(dest="command", required=True)
    check = commands.add_parser("check", parents=[common], help="Print why addresses are invalid")
    check.add_argument("addresses", nargs="+")
    canonical = commands.add_parser("canonical", help="Print canonical forms of addresses")
    canonical.add_argument("addresses", nargs="+")
    commands.add_parser("validate", parents=[common, lists], help="Print valid addresses")
    commands.add_parser("dedupe", parents=[common, lists], help="Print unique valid addresses")
    commands.add_parser("domains", parents=[common, lists], help="Print unique domains")
    commands.add_parser(
        "top-domains", parents=[common, lists], help="Print domains by occurrence count"
    )
    commands.add_parser(
        "addresses", parents=[common, lists], help="Print per-address occurrence statistics"
    )
    return parser


def _validation_config(args: argparse.Namespace) -> ValidationConfig:
    return ValidationConfig.strict() if args.strict else ValidationConfig.generic()


def _parser_config(args: argparse.Namespace, order: Optional[ListOrder] = None) -> ParserConfig:
    return ParserConfig(
        case_sensitive=not args.ignore_case,
        include_comments=args.include_comments,
        include_sub_addresses=args.keep_sub_addresses,
        order=order or ListOrder.from_name(args.order),
        max_results=args.max_results,
    )


def _read_stream(stream: TextIO, split: bool) -> list[str]:
    addresses: list[str] = []
    for line in stream:
        if split:
            addresses.extend(parse_email_list(line))
        elif line.strip():
            addresses.append(line.strip())
    return addresses


def read_addresses(paths: Sequence[str], split: bool = False) -> list[str]:
    """Read addresses from files (or stdin for '-' / no paths)."""
    if not paths:
        return _read_stream(sys.stdin, split)
    addresses: list[str] = []
    for path in paths:
        if path == "-":
            addresses.extend(_read_stream(sys.stdin, split))
            continue
        with open(path, encoding="utf-8") as handle:
            addresses.extend(_read_stream(handle, split))
    return addresses


def _run_list_command(args: argparse.Namespace) -> None:
    addresses = read_addresses(args.files, split=args.split)
    logger.info(f"Read {len(addresses)} addresses.")

    order = None
    if args.command == "domains":
        order = ListOrder.DOMAIN_ALPHABETICAL
    elif args.command == "top-domains":
        order = ListOrder.OCCURRENCES

    aggregator = ListAggregator(
        _validation_config(args),
        _parser_config(args, order),
        workers=args.workers,
        chunk_size=args.chunk_size,
        progress=args.progress,
    )

    if args.command == "validate":
        for address in aggregator.validate(addresses):
            print(address)
    elif args.command == "dedupe":
        for address in aggregator.deduplicate(addresses):
            print(address)
    elif args.command == "domains":
        for analysis in aggregator.analyze_domains(addresses):
            print(analysis.domain)
    elif args.command == "top-domains":
        for analysis in aggregator.analyze_domains(addresses):
            print(f"{analysis.domain} {analysis.total_address_count}")
    elif args.command == "addresses":
        for analysis in aggregator.analyze_addresses(addresses):
            print(
                f"{analysis.canonical_address}\t{analysis.total_count}\t"
                f"{analysis.unique_variation_count}\t{analysis.unique_sub_address_count}"
            )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entrypoint."""
    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    args = build_parser(settings).parse_args(argv)

    if args.command == "check":
        validation = _validation_config(args)
        parser = ParserConfig(
            case_sensitive=not args.ignore_case,
            include_comments=args.include_comments,
            include_sub_addresses=args.keep_sub_addresses,
        )
        invalid = 0
        for address in args.addresses:
            parsed = parse_address(address, validation, parser)
            if parsed.valid:
                print(f"{address}\tvalid")
            else:
                invalid += 1
                print(f"{address}\t{parsed.invalid_reason.value}")
        return 1 if invalid else 0

    if args.command == "canonical":
        for address in args.addresses:
            print(canonicalize(address))
        return 0

    try:
        _run_list_command(args)
    except OSError as exc:
        logger.error(f"Could not read addresses: {exc}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
