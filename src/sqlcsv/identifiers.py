"""Bracket-quoting of SQL Server identifiers and qualified names.

User-supplied table names never reach SQL text unescaped: every name is
run through ``escape_qualified_name`` (or ``QualifiedName.parse``), and a
``ParseError`` is the only possible failure.
"""

import enum
from dataclasses import dataclass

from sqlcsv.errors import ParseError

MAX_PARTS = 4  # server.database.schema.object

_FIRST_EXTRA = frozenset("_@#")
_REST_EXTRA = frozenset("_@#$")


class _State(enum.Enum):
    BETWEEN = "between"
    UNQUOTED = "unquoted"
    QUOTED = "quoted"


def _is_identifier_char(ch: str, first: bool) -> bool:
    if ch.isalpha():
        return True
    if first:
        return ch in _FIRST_EXTRA
    return ch.isdecimal() or ch in _REST_EXTRA


def quote_identifier(part: str) -> str:
    """Bracket-quote a raw name part exactly as given (no stripping)."""
    return "[" + part.replace("]", "]]") + "]"


def _unescape_body(body: str) -> str | None:
    """Collapse ``]]`` pairs; return None if a lone ``]`` is present."""
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "]":
            if body[i + 1 : i + 2] != "]":
                return None
            i += 1
        out.append(ch)
        i += 1
    return "".join(out)


def escape_identifier(identifier: str) -> str:
    """Wrap a single identifier in brackets, doubling embedded ``]``.

    One layer of existing bracket quoting is removed first, so the function
    is idempotent on its own output. Empty input yields an empty string.
    """
    identifier = identifier.strip()
    if not identifier:
        return ""
    if len(identifier) >= 2 and identifier[0] == "[" and identifier[-1] == "]":
        inner = _unescape_body(identifier[1:-1])
        if inner is not None:
            identifier = inner
    return quote_identifier(identifier)


def parse_qualified_name(name: str) -> list[str]:
    """Split ``schema.table`` style names into their raw segments.

    Single forward scan over three states. Inside brackets ``.`` and ``[``
    are literal and ``]]`` is an escaped ``]``; outside brackets only
    identifier characters are accepted.
    """
    name = name.strip()
    if not name:
        return []

    parts: list[str] = []
    current: list[str] = []
    state = _State.BETWEEN
    closed = False  # BETWEEN right after a quoted segment, before its separator
    i = 0
    length = len(name)

    def finish_segment() -> None:
        parts.append("".join(current))
        current.clear()
        if len(parts) > MAX_PARTS:
            raise ParseError(f"too many name parts (at most {MAX_PARTS})", name)

    while i < length:
        ch = name[i]

        if state is _State.QUOTED:
            if ch == "]":
                if i + 1 < length and name[i + 1] == "]":
                    current.append("]")
                    i += 2
                    continue
                if not current:
                    raise ParseError("empty bracketed name", name)
                finish_segment()
                state = _State.BETWEEN
                closed = True
            else:
                current.append(ch)

        elif ch == "]":
            raise ParseError("unescaped ']' outside brackets", name)

        elif ch == ".":
            if state is _State.UNQUOTED:
                finish_segment()
            elif not closed:
                raise ParseError("empty name part", name)
            state = _State.BETWEEN
            closed = False

        elif state is _State.BETWEEN:
            if closed:
                raise ParseError("expected '.' after closing bracket", name)
            if ch == "[":
                state = _State.QUOTED
            elif _is_identifier_char(ch, first=True):
                current.append(ch)
                state = _State.UNQUOTED
            else:
                raise ParseError(f"invalid character {ch!r} in identifier", name)

        else:  # UNQUOTED
            if ch == "[":
                raise ParseError("'[' inside unquoted identifier", name)
            if not _is_identifier_char(ch, first=False):
                raise ParseError(f"invalid character {ch!r} in identifier", name)
            current.append(ch)

        i += 1

    if state is _State.QUOTED:
        raise ParseError("unterminated '['", name)
    if state is _State.UNQUOTED:
        finish_segment()
    elif not closed:
        raise ParseError("empty name part", name)

    return parts


def escape_qualified_name(name: str) -> str:
    """Parse a (possibly dotted) name and bracket-quote every part."""
    return ".".join(quote_identifier(part) for part in parse_qualified_name(name))


@dataclass(frozen=True)
class QualifiedName:
    """A parsed 1-4 part object name."""

    parts: tuple[str, ...]

    @classmethod
    def parse(cls, name: str) -> "QualifiedName":
        parts = parse_qualified_name(name)
        if not parts:
            raise ParseError("name is empty", name)
        return cls(tuple(parts))

    @property
    def object_name(self) -> str:
        return self.parts[-1]

    @property
    def schema(self) -> str | None:
        return self.parts[-2] if len(self.parts) >= 2 else None

    @property
    def escaped(self) -> str:
        return ".".join(quote_identifier(part) for part in self.parts)

    def __str__(self) -> str:
        return self.escaped
