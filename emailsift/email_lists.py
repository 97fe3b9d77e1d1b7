"""List-level operations built on `ListAggregator`.

None or empty input always yields an empty result; invalid addresses are
dropped silently.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Optional

from .aggregator import ListAggregator
from .analysis import AddressAnalysis, DomainAnalysis
from .config import ParserConfig, ValidationConfig
from .models import ListOrder

Addresses = Optional[Iterable[Optional[str]]]


def validate(
    addresses: Addresses,
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> list[str]:
    """Return the canonical form of every valid address, duplicates kept."""
    return ListAggregator(validation, parser).validate(addresses)


def deduplicate(
    addresses: Addresses,
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> list[str]:
    """Return each distinct canonical address once, invalid ones dropped."""
    return ListAggregator(validation, parser).deduplicate(addresses)


def deduplicate_emails(
    addresses: Addresses,
    ignore_case: bool = False,
    remove_sub_addresses: bool = True,
) -> list[str]:
    """Deduplicate under generic rules with the two common knobs exposed.

    Args:
        addresses: Raw addresses.
        ignore_case: Treat local parts case-insensitively (output lower-cased).
        remove_sub_addresses: Fold `user+tag` into `user`.

    Returns:
        Sorted unique canonical addresses.
    """
    parser = ParserConfig(
        case_sensitive=not ignore_case,
        include_sub_addresses=not remove_sub_addresses,
    )
    return deduplicate(addresses, None, parser)


def analyze_domains(
    addresses: Addresses,
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> list[DomainAnalysis]:
    return ListAggregator(validation, parser).analyze_domains(addresses)


def analyze_addresses(
    addresses: Addresses,
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> list[AddressAnalysis]:
    return ListAggregator(validation, parser).analyze_addresses(addresses)


def count_unique_domains(addresses: Addresses) -> int:
    return len(analyze_domains(addresses))


def list_domains(addresses: Addresses) -> list[str]:
    """Return the distinct domains of the valid addresses, alphabetically."""
    parser = ParserConfig(order=ListOrder.DOMAIN_ALPHABETICAL)
    return [d.domain for d in analyze_domains(addresses, None, parser)]


def list_domains_by_count(
    addresses: Addresses, max_results: Optional[int] = None
) -> list[str]:
    """List domains by number of occurrences as "domain count" strings.

    Domains with equal counts are listed alphabetically.
    """
    parser = ParserConfig(order=ListOrder.OCCURRENCES, max_results=max_results)
    return [
        f"{d.domain} {d.total_address_count}"
        for d in analyze_domains(addresses, None, parser)
    ]
