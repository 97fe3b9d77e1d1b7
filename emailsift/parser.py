"""Single-address parser.

Parsing runs in three passes over one address:

1. `_Scanner` walks the characters once and splits them into a local-part
   and a domain token stream, tracking which side of the `@` it is on and
   whether a quote or comment is open.
2. The local-part tokens are checked against the character matchers and
   assembled into the full and canonical local parts.
3. The domain tokens are checked label by label and assembled into the
   lower-cased domain.

The first rule an address breaks decides its `InvalidReason`, so the order
of the checks below is part of the observable behavior.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import ParserConfig, ValidationConfig
from .models import InvalidReason, ParsedAddress

logger = logging.getLogger(__name__)

MAX_LOCAL_PART_LENGTH = 64

_OCTET = r"(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)"
IPV4_DOMAIN_RE = re.compile(rf"\A\[{_OCTET}(?:\.{_OCTET}){{3}}\]\Z")
IPV6_DOMAIN_RE = re.compile(r"\A\[ipv6:[a-f0-9:]+:[a-f0-9]+\]\Z")
DOMAIN_LABEL_RE = re.compile(r"\A[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?\Z")
ANY_LETTER_RE = re.compile(r"[A-Za-z]")


class Side(Enum):
    LOCAL = "local"
    DOMAIN = "domain"


class Delimiter(Enum):
    NONE = "none"
    QUOTE = "quote"
    COMMENT = "comment"


class TokenKind(Enum):
    PLAIN = "plain"
    DOT = "dot"
    QUOTE = "quote"
    COMMENT = "comment"
    SUB_DELIM = "sub_delim"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str

    @property
    def inner(self) -> str:
        """Return the text between the enclosing quote or comment delimiters."""
        return self.text[1:-1]


def _classify(text: str) -> TokenKind:
    first = text[0]
    if first == "(":
        return TokenKind.COMMENT
    if first == '"':
        return TokenKind.QUOTE
    if text == ".":
        return TokenKind.DOT
    return TokenKind.PLAIN


class _Rejected(Exception):
    def __init__(self, reason: InvalidReason) -> None:
        super().__init__(reason.value)
        self.reason = reason


class _Scanner:
    """Finite-state tokenizer over one address.

    State is (side, open delimiter). The buffer holds the token being built
    and is cleared, not replaced, each time a token is emitted.
    """

    def __init__(self, sub_address_delimiters: frozenset[str]) -> None:
        self.sub_address_delimiters = sub_address_delimiters
        self.tokens: dict[Side, list[Token]] = {Side.LOCAL: [], Side.DOMAIN: []}
        self.side = Side.LOCAL
        self.open = Delimiter.NONE
        self.at_count = 0
        self.sub_address_split = False
        self.has_dots = False
        self.has_quotes = False
        self.has_comments = False
        self._buffer: list[str] = []

    @property
    def local_tokens(self) -> list[Token]:
        return self.tokens[Side.LOCAL]

    @property
    def domain_tokens(self) -> list[Token]:
        return self.tokens[Side.DOMAIN]

    def _emit(self, kind: TokenKind, text: str) -> None:
        self.tokens[self.side].append(Token(kind, text))

    def _flush(self) -> None:
        if self._buffer:
            text = "".join(self._buffer)
            self._buffer.clear()
            self._emit(_classify(text), text)

    def scan(self, text: str) -> None:
        """Tokenize `text`, raising `_Rejected` for unbalanced delimiters."""
        for ch in text:
            if ch == "@":
                self._at(ch)
            elif ch == ".":
                self._dot(ch)
            elif ch == "(":
                self._open_comment(ch)
            elif ch == ")":
                self._close_comment(ch)
            elif ch == '"':
                self._quote(ch)
            elif (
                self.open is Delimiter.NONE
                and self.side is Side.LOCAL
                and not self.sub_address_split
                and ch in self.sub_address_delimiters
            ):
                self._flush()
                self._emit(TokenKind.SUB_DELIM, ch)
                self.sub_address_split = True
            else:
                self._buffer.append(ch)
        self._flush()
        if self.open is Delimiter.COMMENT:
            raise _Rejected(InvalidReason.UNCLOSED_PARENTHESIS)
        if self.open is Delimiter.QUOTE:
            raise _Rejected(InvalidReason.UNCLOSED_QUOTE)

    def _at(self, ch: str) -> None:
        if self.open is not Delimiter.NONE:
            self._buffer.append(ch)
            return
        self._flush()
        self.side = Side.DOMAIN
        self.at_count += 1

    def _dot(self, ch: str) -> None:
        if self.open is not Delimiter.NONE:
            self._buffer.append(ch)
            return
        if self.side is Side.LOCAL:
            self.has_dots = True
        self._flush()
        self._emit(TokenKind.DOT, ch)

    def _open_comment(self, ch: str) -> None:
        if self.open is Delimiter.NONE:
            self._flush()
            self.open = Delimiter.COMMENT
            self.has_comments = True
        self._buffer.append(ch)

    def _close_comment(self, ch: str) -> None:
        self._buffer.append(ch)
        if self.open is Delimiter.NONE:
            raise _Rejected(InvalidReason.UNCLOSED_PARENTHESIS)
        if self.open is Delimiter.COMMENT:
            self.open = Delimiter.NONE
            self._flush()

    def _quote(self, ch: str) -> None:
        escaped = bool(self._buffer) and self._buffer[-1] == "\\"
        self._buffer.append(ch)
        if self.open is Delimiter.NONE:
            self.open = Delimiter.QUOTE
            self.has_quotes = True
        elif self.open is Delimiter.QUOTE and not escaped:
            self.open = Delimiter.NONE
            self._flush()


@dataclass(frozen=True)
class _LocalPart:
    full_with_comments: str
    full: str
    canonical: str
    sub_address: str


def _check_structure(scanner: _Scanner, validation: ValidationConfig) -> None:
    if scanner.at_count == 0:
        raise _Rejected(InvalidReason.NO_AT_SYMBOL)
    if scanner.at_count > 1:
        raise _Rejected(InvalidReason.MULTIPLE_AT_SYMBOLS)
    if scanner.has_quotes and not validation.allow_quotes:
        raise _Rejected(InvalidReason.HAS_QUOTES)
    if scanner.has_comments and not validation.allow_comments:
        raise _Rejected(InvalidReason.HAS_COMMENTS)


def _parse_local_part(
    tokens: list[Token], validation: ValidationConfig, parser: ParserConfig
) -> _LocalPart:
    if not validation.allow_dots and any(t.kind is TokenKind.DOT for t in tokens):
        raise _Rejected(InvalidReason.HAS_DOTS)

    with_comments: list[str] = []
    full: list[str] = []
    canonical: list[str] = []
    sub_address: list[str] = []
    in_sub_address = False

    for token in tokens:
        kind = token.kind
        if kind is TokenKind.SUB_DELIM:
            in_sub_address = True

        if kind is TokenKind.COMMENT or kind is TokenKind.QUOTE:
            if not validation.special_pattern.match(token.inner):
                raise _Rejected(InvalidReason.INVALID_CHARACTERS)
        elif kind is not TokenKind.DOT:
            if not validation.printable_pattern.match(token.text):
                raise _Rejected(InvalidReason.INVALID_CHARACTERS)

        is_comment = kind is TokenKind.COMMENT
        with_comments.append(token.text)
        if not is_comment:
            full.append(token.text)
            if in_sub_address:
                sub_address.append(token.text)
        if (not is_comment or parser.include_comments) and (
            not in_sub_address or parser.include_sub_addresses
        ):
            canonical.append(token.text)

    local = _LocalPart(
        full_with_comments="".join(with_comments),
        full="".join(full),
        canonical="".join(canonical),
        sub_address="".join(sub_address),
    )
    # The sub-address is a suffix of the full local part; the mailbox before it
    # must not be empty.
    if len(local.full) == len(local.sub_address):
        raise _Rejected(InvalidReason.BLANK)
    if local.sub_address and not validation.allow_sub_addresses:
        raise _Rejected(InvalidReason.HAS_SUB_ADDRESS)
    if (
        len(local.full_with_comments) > MAX_LOCAL_PART_LENGTH
        or len(local.full) > MAX_LOCAL_PART_LENGTH
    ):
        raise _Rejected(InvalidReason.LOCAL_PART_TOO_LONG)
    if parser.lower_case:
        local = _LocalPart(
            full_with_comments=local.full_with_comments,
            full=local.full,
            canonical=local.canonical.lower(),
            sub_address=local.sub_address.lower(),
        )
    return local


def _parse_domain(
    tokens: list[Token], validation: ValidationConfig, parser: ParserConfig
) -> tuple[str, str]:
    assembled: list[str] = []
    with_comments: list[str] = []
    previous: Optional[TokenKind] = None
    bad_label = False

    for token in tokens:
        kind = token.kind
        with_comments.append(token.text)
        if kind is TokenKind.DOT and previous is TokenKind.DOT:
            raise _Rejected(InvalidReason.CONSECUTIVE_DOTS)
        if kind is TokenKind.COMMENT and not parser.include_comments:
            continue
        if kind is TokenKind.QUOTE:
            raise _Rejected(InvalidReason.DOMAIN_QUOTES)
        assembled.append(token.text)
        previous = kind
        if kind is TokenKind.COMMENT or kind is TokenKind.DOT:
            continue

        label = token.text
        if label.startswith("-") or label.endswith("-"):
            raise _Rejected(InvalidReason.DOMAIN_EDGE_HYPHEN)
        if not ANY_LETTER_RE.search(label):
            bad_label = True
        if len(label) > 1 and not DOMAIN_LABEL_RE.match(label):
            bad_label = True

    domain = "".join(assembled)
    if not domain:
        raise _Rejected(InvalidReason.BLANK)
    if domain[0] == "." or domain[-1] == ".":
        raise _Rejected(InvalidReason.EDGE_DOT)
    if domain[0] == "-" or domain[-1] == "-":
        raise _Rejected(InvalidReason.DOMAIN_EDGE_HYPHEN)

    domain = domain.lower()
    is_ip_literal = False
    if IPV4_DOMAIN_RE.match(domain):
        is_ip_literal = True
        if not validation.allow_v4_ip_domains:
            raise _Rejected(InvalidReason.V4_IP_DOMAIN)
    elif IPV6_DOMAIN_RE.match(domain):
        is_ip_literal = True
        if not validation.allow_v6_ip_domains:
            raise _Rejected(InvalidReason.V6_IP_DOMAIN)

    if not is_ip_literal and bad_label:
        raise _Rejected(InvalidReason.INVALID_CHARACTERS)
    if not validation.allow_single_name_domains and "." not in domain:
        raise _Rejected(InvalidReason.NO_TOP_LEVEL_DOMAIN)
    return domain, "".join(with_comments)


def parse_address(
    raw: Optional[str],
    validation: Optional[ValidationConfig] = None,
    parser: Optional[ParserConfig] = None,
) -> ParsedAddress:
    """Parse and classify one address.

    Args:
        raw: Address text; None or empty is rejected as BLANK.
        validation: Grammar rules, `ValidationConfig.generic()` when omitted.
        parser: Output shaping rules, `ParserConfig.standard()` when omitted.

    Returns:
        A ParsedAddress; invalid input is reported through its
        `invalid_reason`, never raised.
    """
    validation = validation or ValidationConfig.generic()
    parser = parser or ParserConfig.standard()

    if not raw:
        return ParsedAddress.invalid(raw, InvalidReason.BLANK)

    scanner = _Scanner(parser.sub_address_delimiters)
    try:
        scanner.scan(raw)
        _check_structure(scanner, validation)
        local = _parse_local_part(scanner.local_tokens, validation, parser)
        domain, domain_with_comments = _parse_domain(
            scanner.domain_tokens, validation, parser
        )
    except _Rejected as exc:
        logger.debug(f"Rejected {raw!r}: {exc.reason.value}")
        return ParsedAddress.invalid(
            raw,
            exc.reason,
            has_dots=scanner.has_dots,
            has_quotes=scanner.has_quotes,
            has_comments=scanner.has_comments,
        )

    return ParsedAddress(
        raw=raw,
        valid=True,
        domain=domain,
        domain_with_comments=domain_with_comments if scanner.has_comments else None,
        canonical_local_part=local.canonical,
        full_local_part=local.full,
        full_local_part_with_comments=(
            local.full_with_comments if scanner.has_comments else None
        ),
        sub_address=local.sub_address,
        has_dots=scanner.has_dots,
        has_quotes=scanner.has_quotes,
        has_comments=scanner.has_comments,
    )
