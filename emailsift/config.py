"""Validation and parser rule sets.

Both rule objects are frozen. A `ValidationConfig` compiles its character
matchers while it is being constructed, so a rule set can never carry
matchers that disagree with its character sets. The helper methods return
new instances instead of mutating the receiver.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .models import ListOrder

# Characters allowed unquoted in a local part when enabled.
PRINTABLE_CHARACTERS = frozenset("!#$%&'*+-/=?^_`{}|~")

# Characters allowed only inside quotes or comments when enabled.
SPECIAL_CHARACTERS = frozenset(' "(),:;<>@[\\]')

GENERIC_PRINTABLE_CHARACTERS = frozenset("+-")

# Characters the scanner always treats structurally.
RESERVED_CHARACTERS = frozenset('@.()"')


def _character_class(characters: Iterable[str]) -> str:
    return "".join(re.escape(ch) for ch in sorted(characters))


def compile_printable_pattern(printable: Iterable[str]) -> re.Pattern[str]:
    """Build the whole-token matcher for unquoted local-part text."""
    return re.compile(r"\A[A-Za-z0-9" + _character_class(printable) + r"]+\Z")


def compile_special_pattern(special: Iterable[str]) -> re.Pattern[str]:
    """Build the matcher for the inner text of quotes and comments.

    Dots and the full printable superset are always accepted here, whichever
    printable characters are enabled for unquoted text.
    """
    special = frozenset(special)
    whitespace = r"\s" if " " in special else ""
    return re.compile(
        r"\A[A-Za-z0-9"
        + _character_class(PRINTABLE_CHARACTERS | special | {"."})
        + whitespace
        + r"]*\Z"
    )


def _as_characters(values: Iterable[str]) -> frozenset[str]:
    characters: set[str] = set()
    for value in values:
        characters.update(str(value))
    return frozenset(characters)


@dataclass(frozen=True)
class ValidationConfig:
    """Which parts of the RFC5322 grammar an address may use."""

    allow_quotes: bool = False
    allow_comments: bool = False
    allow_dots: bool = True
    allow_sub_addresses: bool = True
    allow_single_name_domains: bool = False
    allow_v4_ip_domains: bool = False
    allow_v6_ip_domains: bool = False
    printable_characters: frozenset[str] = GENERIC_PRINTABLE_CHARACTERS
    special_characters: frozenset[str] = SPECIAL_CHARACTERS

    printable_pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)
    special_pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        printable = _as_characters(self.printable_characters) & PRINTABLE_CHARACTERS
        special = _as_characters(self.special_characters) & SPECIAL_CHARACTERS
        object.__setattr__(self, "printable_characters", printable)
        object.__setattr__(self, "special_characters", special)
        object.__setattr__(self, "printable_pattern", compile_printable_pattern(printable))
        object.__setattr__(self, "special_pattern", compile_special_pattern(special))

    @classmethod
    def generic(cls) -> ValidationConfig:
        """Rules for addresses that "look right".

        Quotes, comments, dotless domains and IP literals are rejected; dots,
        sub-addresses, pluses and hyphens are accepted. Every special
        character is enabled, which is inert while quotes and comments are
        off.
        """
        return cls()

    @classmethod
    def strict(cls) -> ValidationConfig:
        """Rules accepting everything RFC5322 allows within this grammar."""
        return cls(
            allow_quotes=True,
            allow_comments=True,
            allow_dots=True,
            allow_sub_addresses=True,
            allow_single_name_domains=True,
            allow_v4_ip_domains=True,
            allow_v6_ip_domains=True,
            printable_characters=PRINTABLE_CHARACTERS,
            special_characters=SPECIAL_CHARACTERS,
        )

    @classmethod
    def from_name(cls, name: str) -> ValidationConfig:
        key = (name or "").strip().lower()
        if key == "generic":
            return cls.generic()
        if key == "strict":
            return cls.strict()
        raise ValueError(f"Unknown rule set={name!r}. Options: ['generic', 'strict']")

    def with_rules(self, **rules: bool) -> ValidationConfig:
        """Return a copy with the given `allow_*` flags replaced."""
        unknown = [name for name in rules if not name.startswith("allow_")]
        if unknown:
            raise ValueError(f"Unknown validation rules: {sorted(unknown)}")
        return replace(self, **rules)

    def allow_printable_characters(self, *characters: str) -> ValidationConfig:
        """Enable unquoted local-part characters; ones outside the superset are ignored."""
        return replace(
            self,
            printable_characters=self.printable_characters | _as_characters(characters),
        )

    def disallow_printable_characters(self, *characters: str) -> ValidationConfig:
        return replace(
            self,
            printable_characters=self.printable_characters - _as_characters(characters),
        )

    def allow_special_characters(self, *characters: str) -> ValidationConfig:
        """Enable characters inside quotes and comments; others are ignored."""
        return replace(
            self,
            special_characters=self.special_characters | _as_characters(characters),
        )

    def disallow_special_characters(self, *characters: str) -> ValidationConfig:
        return replace(
            self,
            special_characters=self.special_characters - _as_characters(characters),
        )

    def allow_hyphens(self, allowed: bool = True) -> ValidationConfig:
        if allowed:
            return self.allow_printable_characters("-")
        return self.disallow_printable_characters("-")

    def allow_pluses(self, allowed: bool = True) -> ValidationConfig:
        if allowed:
            return self.allow_printable_characters("+")
        return self.disallow_printable_characters("+")


@dataclass(frozen=True)
class ParserConfig:
    """How a valid address is shaped into its canonical form and how lists are ordered.

    `max_results` only truncates analysis results ordered by occurrences.
    """

    case_sensitive: bool = True
    include_comments: bool = False
    include_sub_addresses: bool = False
    sub_address_delimiters: frozenset[str] = frozenset("+")
    order: ListOrder = ListOrder.ALPHABETICAL
    max_results: Optional[int] = None

    def __post_init__(self) -> None:
        delimiters = frozenset(self.sub_address_delimiters)
        for delimiter in delimiters:
            if not isinstance(delimiter, str) or len(delimiter) != 1:
                raise ValueError(
                    f"Sub-address delimiters must be single characters, got {delimiter!r}"
                )
            if delimiter in RESERVED_CHARACTERS:
                raise ValueError(f"{delimiter!r} cannot be used as a sub-address delimiter")
        object.__setattr__(self, "sub_address_delimiters", delimiters)
        object.__setattr__(self, "order", ListOrder.from_name(self.order))
        if self.max_results is not None:
            if (
                isinstance(self.max_results, bool)
                or not isinstance(self.max_results, int)
                or self.max_results < 1
            ):
                raise ValueError(
                    f"max_results must be a positive integer, got {self.max_results!r}"
                )

    @classmethod
    def standard(cls) -> ParserConfig:
        """Case preserved, comments and sub-addresses left out of the canonical form."""
        return cls()

    @property
    def lower_case(self) -> bool:
        return not self.case_sensitive

    def with_options(self, **options) -> ParserConfig:
        return replace(self, **options)
