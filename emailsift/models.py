from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class InvalidReason(str, Enum):
    """Closed set of reasons an address can be rejected for.

    The first block is invalid under every rule set, the second only under
    rule sets that switch the corresponding feature off.
    """

    BLANK = "BLANK"
    NO_AT_SYMBOL = "NO_AT_SYMBOL"
    MULTIPLE_AT_SYMBOLS = "MULTIPLE_AT_SYMBOLS"
    LOCAL_PART_TOO_LONG = "LOCAL_PART_TOO_LONG"
    UNCLOSED_PARENTHESIS = "UNCLOSED_PARENTHESIS"
    UNCLOSED_QUOTE = "UNCLOSED_QUOTE"
    INVALID_CHARACTERS = "INVALID_CHARACTERS"
    DOMAIN_QUOTES = "DOMAIN_QUOTES"
    UNDERSCORES = "UNDERSCORES"
    CONSECUTIVE_DOTS = "CONSECUTIVE_DOTS"
    EDGE_DOT = "EDGE_DOT"
    DOMAIN_EDGE_HYPHEN = "DOMAIN_EDGE_HYPHEN"

    NO_TOP_LEVEL_DOMAIN = "NO_TOP_LEVEL_DOMAIN"
    V4_IP_DOMAIN = "V4_IP_DOMAIN"
    V6_IP_DOMAIN = "V6_IP_DOMAIN"
    HAS_QUOTES = "HAS_QUOTES"
    HAS_COMMENTS = "HAS_COMMENTS"
    HAS_SUB_ADDRESS = "HAS_SUB_ADDRESS"
    HAS_DOTS = "HAS_DOTS"

    @property
    def is_policy(self) -> bool:
        """Return True when the reason depends on the rule set in use."""
        return self in _POLICY_REASONS


_POLICY_REASONS = frozenset(
    {
        InvalidReason.NO_TOP_LEVEL_DOMAIN,
        InvalidReason.V4_IP_DOMAIN,
        InvalidReason.V6_IP_DOMAIN,
        InvalidReason.HAS_QUOTES,
        InvalidReason.HAS_COMMENTS,
        InvalidReason.HAS_SUB_ADDRESS,
        InvalidReason.HAS_DOTS,
    }
)


class ListOrder(str, Enum):
    ALPHABETICAL = "alphabetical"
    DOMAIN_ALPHABETICAL = "domain_alphabetical"
    OCCURRENCES = "occurrences"

    @classmethod
    def from_name(cls, name: str | ListOrder) -> ListOrder:
        """Resolve an order from its value or member name, case-insensitively."""
        if isinstance(name, ListOrder):
            return name
        key = str(name or "").strip().lower().replace("-", "_")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(
            f"Unknown list order={name!r}. Options: {[m.value for m in cls]}"
        )


@dataclass(frozen=True)
class ParsedAddress:
    """Result of parsing one raw address under one pair of rule sets.

    Every derived field is None when the address is invalid; `sub_address`
    is an empty string for a valid address without one.
    """

    raw: Optional[str]
    valid: bool
    invalid_reason: Optional[InvalidReason] = None

    domain: Optional[str] = None
    domain_with_comments: Optional[str] = None
    canonical_local_part: Optional[str] = None
    full_local_part: Optional[str] = None
    full_local_part_with_comments: Optional[str] = None
    sub_address: Optional[str] = None

    has_dots: bool = False
    has_quotes: bool = False
    has_comments: bool = False

    def __post_init__(self) -> None:
        """Keep the valid flag and the reason consistent with each other."""
        if self.valid and self.invalid_reason is not None:
            raise ValueError("A valid address cannot carry an invalid reason.")
        if not self.valid and self.invalid_reason is None:
            raise ValueError("An invalid address needs an invalid reason.")

    @classmethod
    def invalid(
        cls,
        raw: Optional[str],
        reason: InvalidReason,
        *,
        has_dots: bool = False,
        has_quotes: bool = False,
        has_comments: bool = False,
    ) -> ParsedAddress:
        return cls(
            raw=raw,
            valid=False,
            invalid_reason=reason,
            has_dots=has_dots,
            has_quotes=has_quotes,
            has_comments=has_comments,
        )

    @property
    def has_sub_address(self) -> bool:
        return bool(self.sub_address)

    @property
    def canonical_address(self) -> Optional[str]:
        """Return `canonical_local_part@domain`, or None when invalid."""
        if not self.valid:
            return None
        return f"{self.canonical_local_part}@{self.domain}"

    @property
    def full_address(self) -> Optional[str]:
        """Return the address with comments removed but case and sub-address kept."""
        if not self.valid:
            return None
        return f"{self.full_local_part}@{self.domain}"

    def __str__(self) -> str:
        if not self.valid:
            return f"{self.raw!r} -> invalid ({self.invalid_reason.value})"
        return f"{self.raw!r} -> {self.canonical_address}"
