"""Occurrence statistics for groups of parsed addresses.

`AddressAnalysis` groups results by canonical address, `DomainAnalysis` by
domain. Folding and merging only ever append to lists and union sets, so
the counts do not depend on the order results arrive in. That lets list
operations fold chunks independently and merge the partial maps after.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional, TypeVar

from .models import ListOrder, ParsedAddress


@dataclass
class AddressAnalysis:
    """Every raw address that produced one canonical address."""

    canonical_address: str
    domain: str
    local_part: str
    raw_addresses: list[str] = field(default_factory=list)
    distinct_raw_addresses: set[str] = field(default_factory=set)
    sub_addresses: set[str] = field(default_factory=set)

    @classmethod
    def from_parsed(cls, parsed: ParsedAddress) -> AddressAnalysis:
        if not parsed.valid:
            raise ValueError(f"Cannot analyse invalid address {parsed.raw!r}")
        analysis = cls(
            canonical_address=parsed.canonical_address,
            domain=parsed.domain,
            local_part=parsed.canonical_local_part,
        )
        analysis.fold(parsed)
        return analysis

    def fold(self, parsed: ParsedAddress) -> bool:
        """Add one parsed address; returns False and changes nothing when it does not belong."""
        if not parsed.valid or parsed.canonical_address != self.canonical_address:
            return False
        self.raw_addresses.append(parsed.raw)
        self.distinct_raw_addresses.add(parsed.raw)
        if parsed.has_sub_address:
            self.sub_addresses.add(parsed.sub_address)
        return True

    def merge(self, other: AddressAnalysis) -> AddressAnalysis:
        if other.canonical_address != self.canonical_address:
            raise ValueError(
                f"Cannot merge {other.canonical_address!r} into {self.canonical_address!r}"
            )
        return AddressAnalysis(
            canonical_address=self.canonical_address,
            domain=self.domain,
            local_part=self.local_part,
            raw_addresses=[*self.raw_addresses, *other.raw_addresses],
            distinct_raw_addresses=self.distinct_raw_addresses | other.distinct_raw_addresses,
            sub_addresses=self.sub_addresses | other.sub_addresses,
        )

    def absorb(self, other: AddressAnalysis) -> None:
        """Merge `other` into this record in place."""
        if other.canonical_address != self.canonical_address:
            raise ValueError(
                f"Cannot merge {other.canonical_address!r} into {self.canonical_address!r}"
            )
        self.raw_addresses.extend(other.raw_addresses)
        self.distinct_raw_addresses.update(other.distinct_raw_addresses)
        self.sub_addresses.update(other.sub_addresses)

    @property
    def total_count(self) -> int:
        return len(self.raw_addresses)

    @property
    def occurrence_count(self) -> int:
        return self.total_count

    @property
    def unique_variation_count(self) -> int:
        """Number of distinct raw spellings of this address."""
        return len(self.distinct_raw_addresses)

    @property
    def unique_sub_address_count(self) -> int:
        return len(self.sub_addresses)


@dataclass
class DomainAnalysis:
    """Every local part and sub-address seen for one domain."""

    domain: str
    local_parts: list[str] = field(default_factory=list)
    unique_local_parts: set[str] = field(default_factory=set)
    sub_addresses: list[str] = field(default_factory=list)
    unique_sub_addresses: set[str] = field(default_factory=set)

    @classmethod
    def from_parsed(cls, parsed: ParsedAddress) -> DomainAnalysis:
        if not parsed.valid:
            raise ValueError(f"Cannot analyse invalid address {parsed.raw!r}")
        analysis = cls(domain=parsed.domain)
        analysis.fold(parsed)
        return analysis

    def fold(self, parsed: ParsedAddress) -> bool:
        if not parsed.valid or parsed.domain != self.domain:
            return False
        self.local_parts.append(parsed.canonical_local_part)
        self.unique_local_parts.add(parsed.canonical_local_part)
        if parsed.has_sub_address:
            self.sub_addresses.append(parsed.sub_address)
            self.unique_sub_addresses.add(parsed.sub_address)
        return True

    def merge(self, other: DomainAnalysis) -> DomainAnalysis:
        if other.domain != self.domain:
            raise ValueError(f"Cannot merge {other.domain!r} into {self.domain!r}")
        return DomainAnalysis(
            domain=self.domain,
            local_parts=[*self.local_parts, *other.local_parts],
            unique_local_parts=self.unique_local_parts | other.unique_local_parts,
            sub_addresses=[*self.sub_addresses, *other.sub_addresses],
            unique_sub_addresses=self.unique_sub_addresses | other.unique_sub_addresses,
        )

    def absorb(self, other: DomainAnalysis) -> None:
        """Merge `other` into this record in place."""
        if other.domain != self.domain:
            raise ValueError(f"Cannot merge {other.domain!r} into {self.domain!r}")
        self.local_parts.extend(other.local_parts)
        self.unique_local_parts.update(other.unique_local_parts)
        self.sub_addresses.extend(other.sub_addresses)
        self.unique_sub_addresses.update(other.unique_sub_addresses)

    @property
    def total_address_count(self) -> int:
        """Addresses mapped to this domain, duplicates included."""
        return len(self.local_parts)

    @property
    def occurrence_count(self) -> int:
        return self.total_address_count

    @property
    def unique_address_count(self) -> int:
        """Distinct canonical local parts; shaped by the parser rules in use."""
        return len(self.unique_local_parts)

    @property
    def total_sub_address_count(self) -> int:
        return len(self.sub_addresses)

    @property
    def unique_sub_address_count(self) -> int:
        return len(self.unique_sub_addresses)


# ===========================
# Reducers
# ===========================

Analysis = TypeVar("Analysis", AddressAnalysis, DomainAnalysis)


def _fold(
    parsed: Iterable[ParsedAddress],
    key: Callable[[ParsedAddress], str],
    seed: Callable[[ParsedAddress], Analysis],
    into: Optional[dict[str, Analysis]] = None,
) -> dict[str, Analysis]:
    groups: dict[str, Analysis] = {} if into is None else into
    for item in parsed:
        if not item.valid:
            continue
        k = key(item)
        existing = groups.get(k)
        if existing is None:
            groups[k] = seed(item)
        else:
            existing.fold(item)
    return groups


def fold_addresses(
    parsed: Iterable[ParsedAddress],
    into: Optional[dict[str, AddressAnalysis]] = None,
) -> dict[str, AddressAnalysis]:
    """Group valid results by canonical address; invalid ones are skipped."""
    return _fold(parsed, lambda p: p.canonical_address, AddressAnalysis.from_parsed, into)


def fold_domains(
    parsed: Iterable[ParsedAddress],
    into: Optional[dict[str, DomainAnalysis]] = None,
) -> dict[str, DomainAnalysis]:
    """Group valid results by domain; invalid ones are skipped."""
    return _fold(parsed, lambda p: p.domain, DomainAnalysis.from_parsed, into)


def merge_maps(
    left: dict[str, Analysis], right: dict[str, Analysis]
) -> dict[str, Analysis]:
    """Combine two partial maps into a new one; inputs are left untouched."""
    merged = dict(left)
    for k, analysis in right.items():
        existing = merged.get(k)
        merged[k] = analysis if existing is None else existing.merge(analysis)
    return merged


def merge_into(
    target: dict[str, Analysis], partial: dict[str, Analysis]
) -> dict[str, Analysis]:
    """Fold a partial map into `target` in place and return `target`.

    Records from `partial` are adopted or absorbed, so the caller must not
    reuse `partial` afterwards.
    """
    for k, analysis in partial.items():
        existing = target.get(k)
        if existing is None:
            target[k] = analysis
        else:
            existing.absorb(analysis)
    return target


# ===========================
# Ordering
# ===========================


def address_sort_key(order: ListOrder) -> Callable[[AddressAnalysis], tuple]:
    if order is ListOrder.OCCURRENCES:
        return lambda a: (-a.occurrence_count, a.canonical_address)
    if order is ListOrder.DOMAIN_ALPHABETICAL:
        return lambda a: (a.domain, a.canonical_address)
    return lambda a: (a.canonical_address,)


def domain_sort_key(order: ListOrder) -> Callable[[DomainAnalysis], tuple]:
    if order is ListOrder.OCCURRENCES:
        return lambda d: (-d.occurrence_count, d.domain)
    return lambda d: (d.domain,)


def truncate(
    items: list[Analysis], order: ListOrder, max_results: Optional[int]
) -> list[Analysis]:
    """Apply the result cap, which only exists for occurrence ordering."""
    if order is ListOrder.OCCURRENCES and max_results is not None:
        return items[:max_results]
    return items
