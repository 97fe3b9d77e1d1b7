from __future__ import annotations

import concurrent.futures
import logging
from typing import Callable, Iterable, Iterator, Optional, TypeVar

from tqdm import tqdm

from .analysis import (
    AddressAnalysis,
    DomainAnalysis,
    address_sort_key,
    domain_sort_key,
    fold_addresses,
    fold_domains,
    merge_into,
    truncate,
)
from .config import ParserConfig, ValidationConfig
from .models import ParsedAddress
from .parser import parse_address

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 5000

T = TypeVar("T")


class ListAggregator:
    """Runs the parser over a list of addresses and groups the results.

    With `workers > 1` the list is cut into chunks that are parsed and
    folded on a thread pool; partial results are merged in chunk order, so
    the output matches the single-worker path exactly.

    Parsing is pure Python and holds the GIL, so extra worker threads do not
    make it faster; `workers` only changes how chunks are scheduled. Keep
    `workers=1` for plain throughput.
    Partial maps are absorbed into one accumulator in place, so grouping
    stays linear in the input whatever the chunk size.
    """

    def __init__(
        self,
        validation: Optional[ValidationConfig] = None,
        parser: Optional[ParserConfig] = None,
        *,
        workers: int = 1,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        progress: bool = False,
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers!r}")
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size!r}")
        self.validation = validation or ValidationConfig.generic()
        self.parser = parser or ParserConfig.standard()
        self.workers = workers
        self.chunk_size = chunk_size
        self.progress = progress

    def _parse_chunk(self, chunk: list[Optional[str]]) -> list[ParsedAddress]:
        return [parse_address(raw, self.validation, self.parser) for raw in chunk]

    def _run_chunks(
        self,
        addresses: Optional[Iterable[Optional[str]]],
        fn: Callable[[list[Optional[str]]], T],
        desc: str,
    ) -> Iterator[T]:
        """Yield `fn(chunk)` for each chunk of the input, in input order."""
        items = list(addresses or [])
        chunks = [
            items[start : start + self.chunk_size]
            for start in range(0, len(items), self.chunk_size)
        ]
        with tqdm(
            total=len(items), desc=desc, unit="addr", disable=not self.progress
        ) as bar:
            if self.workers == 1 or len(chunks) <= 1:
                for chunk in chunks:
                    result = fn(chunk)
                    bar.update(len(chunk))
                    yield result
                return

            logger.debug(
                f"Processing {len(items)} addresses in {len(chunks)} chunks on {self.workers} workers."
            )
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
                for chunk, result in zip(chunks, executor.map(fn, chunks)):
                    bar.update(len(chunk))
                    yield result

    def parse_all(self, addresses: Optional[Iterable[Optional[str]]]) -> list[ParsedAddress]:
        """Parse every address, keeping input order."""
        parsed: list[ParsedAddress] = []
        for chunk_results in self._run_chunks(addresses, self._parse_chunk, "Parsing"):
            parsed.extend(chunk_results)
        return parsed

    def _fold_address_chunk(self, chunk: list[Optional[str]]) -> dict[str, AddressAnalysis]:
        return fold_addresses(self._parse_chunk(chunk))

    def _fold_domain_chunk(self, chunk: list[Optional[str]]) -> dict[str, DomainAnalysis]:
        return fold_domains(self._parse_chunk(chunk))

    def _address_map(self, addresses) -> dict[str, AddressAnalysis]:
        grouped: dict[str, AddressAnalysis] = {}
        for partial in self._run_chunks(addresses, self._fold_address_chunk, "Grouping"):
            merge_into(grouped, partial)
        return grouped

    def _domain_map(self, addresses) -> dict[str, DomainAnalysis]:
        grouped: dict[str, DomainAnalysis] = {}
        for partial in self._run_chunks(addresses, self._fold_domain_chunk, "Grouping"):
            merge_into(grouped, partial)
        return grouped

    def validate(self, addresses: Optional[Iterable[Optional[str]]]) -> list[str]:
        """Return the canonical form of every valid address, duplicates kept."""
        parsed = self.parse_all(addresses)
        # Occurrence ordering ranks each address by the size of its group.
        grouped = fold_addresses(parsed)
        key = address_sort_key(self.parser.order)
        valid = sorted(
            (p for p in parsed if p.valid),
            key=lambda p: key(grouped[p.canonical_address]),
        )
        logger.info(f"Validated {len(parsed)} addresses: {len(valid)} valid.")
        return [p.canonical_address for p in valid]

    def deduplicate(self, addresses: Optional[Iterable[Optional[str]]]) -> list[str]:
        """Return one canonical address per group of equivalent valid addresses."""
        return [a.canonical_address for a in self._sorted_addresses(addresses)]

    def _sorted_addresses(self, addresses) -> list[AddressAnalysis]:
        grouped = self._address_map(addresses)
        ordered = sorted(grouped.values(), key=address_sort_key(self.parser.order))
        logger.info(f"Grouped addresses into {len(ordered)} unique canonical addresses.")
        return ordered

    def analyze_addresses(
        self, addresses: Optional[Iterable[Optional[str]]]
    ) -> list[AddressAnalysis]:
        """Return per-canonical-address statistics, sorted and optionally capped."""
        ordered = self._sorted_addresses(addresses)
        return truncate(ordered, self.parser.order, self.parser.max_results)

    def analyze_domains(
        self, addresses: Optional[Iterable[Optional[str]]]
    ) -> list[DomainAnalysis]:
        """Return per-domain statistics, sorted and optionally capped."""
        grouped = self._domain_map(addresses)
        ordered = sorted(grouped.values(), key=domain_sort_key(self.parser.order))
        logger.info(f"Grouped addresses into {len(ordered)} unique domains.")
        return truncate(ordered, self.parser.order, self.parser.max_results)
