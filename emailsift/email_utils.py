from __future__ import annotations

import re
from typing import Optional

from .config import ParserConfig, ValidationConfig
from .models import InvalidReason, ParsedAddress
from .parser import parse_address

_CANONICAL_PARSER = ParserConfig(case_sensitive=False, include_sub_addresses=False)
_STRIP_SUB_ADDRESS_PARSER = ParserConfig(include_sub_addresses=False)
_STRIP_COMMENTS_PARSER = ParserConfig(include_sub_addresses=True)


def parse(
    address: Optional[str],
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> ParsedAddress:
    """Parse an address under the given rules (generic/standard by default)."""
    return parse_address(address, validation, parser)


def is_valid(address: Optional[str], validation: Optional[ValidationConfig] = None) -> bool:
    """Return True when an address passes the given rules (generic by default)."""
    return parse_address(address, validation).valid


def is_not_valid(address: Optional[str], validation: Optional[ValidationConfig] = None) -> bool:
    return not is_valid(address, validation)


def invalid_reason(
    address: Optional[str], validation: Optional[ValidationConfig] = None
) -> InvalidReason | None:
    """Return the first rule the address breaks, or None when it is valid."""
    return parse_address(address, validation).invalid_reason


def has_sub_address(address: Optional[str]) -> bool:
    return parse_address(address, ValidationConfig.strict()).has_sub_address


def has_quotes(address: Optional[str]) -> bool:
    return parse_address(address, ValidationConfig.strict()).has_quotes


def has_comments(address: Optional[str]) -> bool:
    return parse_address(address, ValidationConfig.strict()).has_comments


def has_dots(address: Optional[str]) -> bool:
    """Return True when the local part contains an unquoted dot."""
    return parse_address(address, ValidationConfig.strict()).has_dots


def _reshape(address: Optional[str], parser: ParserConfig) -> Optional[str]:
    parsed = parse_address(address, ValidationConfig.strict(), parser)
    return parsed.canonical_address if parsed.valid else address


def canonicalize(address: Optional[str]) -> Optional[str]:
    """Strip comments and any sub-address and lower-case the local part.

    Args:
        address: Raw address text.

    Returns:
        The canonical address, or the input unchanged when it cannot be parsed.
    """
    return _reshape(address, _CANONICAL_PARSER)


def strip_sub_address(address: Optional[str]) -> Optional[str]:
    """Strip comments and any sub-address, keeping the local-part case."""
    return _reshape(address, _STRIP_SUB_ADDRESS_PARSER)


def strip_comments(address: Optional[str]) -> Optional[str]:
    """Strip comments only, keeping case and any sub-address."""
    return _reshape(address, _STRIP_COMMENTS_PARSER)


def parse_email_list(raw: str | None) -> list[str]:
    """Split a raw recipient string into candidate values."""
    if not raw:
        return []
    return [item.strip() for item in re.split(r"[,\n;]+", raw) if item.strip()]
