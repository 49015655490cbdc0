"""Content-line tokenizer for ICS documents - CalendarApp Lite.

Turns raw ICS text into immutable ``ICSProperty`` records, one per logical
content line, grouped per VEVENT block. This is a best-effort reader: lines
it cannot make sense of are skipped, never raised.
"""

import logging
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

logger = logging.getLogger(__name__)

_LINE_BREAK_RE = re.compile(r"\r\n|\n|\r")
_UNESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPE_MAP = {"\\": "\\", ";": ";", ",": ",", "n": "\n", "N": "\n"}


@dataclass(frozen=True)
class ICSProperty:
    """One content line: ``NAME;KEY=VALUE;...:value``."""

    name: str
    value: str
    params: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def param(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self.params.get(key.upper(), default)


@dataclass(frozen=True)
class ICSDocument:
    """Calendar-level properties plus the property list of every VEVENT."""

    calendar_properties: tuple[ICSProperty, ...]
    vevent_blocks: tuple[tuple[ICSProperty, ...], ...]


def escape_text(text: str) -> str:
    """Escape a TEXT value for serialization.

    Backslash goes first so the escapes added afterwards are not doubled.
    """
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\n")
        .replace("\r", "\n")
        .replace("\n", "\\n")
    )


def unescape_text(text: str) -> str:
    """Inverse of ``escape_text``.

    A single left-to-right pass, so ``\\\\n`` decodes to a backslash followed
    by ``n`` rather than a newline. Unknown escapes are kept verbatim.
    """
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPE_MAP.get(m.group(1), m.group(0)), text)


def unfold_lines(content: str) -> list[str]:
    """Split ICS text into logical lines, undoing RFC 5545 line folding.

    A physical line starting with a space or tab continues the previous
    logical line; the single leading whitespace character is dropped.
    """
    logical: list[str] = []
    for physical in _LINE_BREAK_RE.split(content):
        if physical[:1] in (" ", "\t") and logical:
            logical[-1] += physical[1:]
        else:
            logical.append(physical)
    return logical


def _split_outside_quotes(text: str, separator: str, maxsplit: int = -1) -> list[str]:
    parts: list[str] = []
    current: list[str] = []
    in_quotes = False
    for char in text:
        if char == '"':
            in_quotes = not in_quotes
        if char == separator and not in_quotes and (maxsplit < 0 or len(parts) < maxsplit):
            parts.append("".join(current))
            current = []
            continue
        current.append(char)
    parts.append("".join(current))
    return parts


def tokenize_line(line: str) -> Optional[ICSProperty]:
    """Tokenize one unfolded content line.

    Returns:
        The property, or None when the line has no colon outside a quoted
        parameter value or no property name.
    """
    pieces = _split_outside_quotes(line, ":", maxsplit=1)
    if len(pieces) < 2:
        return None
    head, value = pieces

    head_parts = _split_outside_quotes(head, ";")
    name = head_parts[0].strip().upper()
    if not name:
        return None

    params: dict[str, str] = {}
    for raw_param in head_parts[1:]:
        if "=" not in raw_param:
            continue
        key, param_value = raw_param.split("=", 1)
        param_value = param_value.strip()
        if len(param_value) >= 2 and param_value[0] == param_value[-1] == '"':
            param_value = param_value[1:-1]
        params[key.strip().upper()] = param_value

    return ICSProperty(name=name, value=value, params=MappingProxyType(params))


def tokenize_block(lines: Iterable[str]) -> tuple[ICSProperty, ...]:
    """Tokenize the lines of one block, silently skipping malformed ones."""
    props = []
    for line in lines:
        prop = tokenize_line(line)
        if prop is None:
            if line.strip():
                logger.debug("Skipping malformed content line: %r", line)
            continue
        props.append(prop)
    return tuple(props)


def first(props: Iterable[ICSProperty], name: str) -> Optional[ICSProperty]:
    """First property with the given name, if any."""
    wanted = name.upper()
    return next((p for p in props if p.name == wanted), None)


def all_of(props: Iterable[ICSProperty], name: str) -> list[ICSProperty]:
    """Every property with the given name, in document order."""
    wanted = name.upper()
    return [p for p in props if p.name == wanted]


def text_value(props: Iterable[ICSProperty], name: str) -> Optional[str]:
    """Unescaped value of a TEXT property; empty values count as absent."""
    prop = first(props, name)
    if prop is None or prop.value == "":
        return None
    return unescape_text(prop.value)


def _iter_logical_lines(content: str) -> Iterator[tuple[str, str]]:
    """Yield ``(line, stripped)`` pairs; values keep their own whitespace."""
    for line in unfold_lines(content):
        stripped = line.strip()
        if stripped:
            yield line, stripped


def split_document(content: str) -> ICSDocument:
    """Split ICS text into calendar-level properties and VEVENT blocks.

    Sub-components nested inside a VEVENT (VALARM and friends) are skipped
    so their properties never leak into the event. An unterminated trailing
    VEVENT is dropped.
    """
    calendar_lines: list[str] = []
    blocks: list[tuple[ICSProperty, ...]] = []
    current: Optional[list[str]] = None
    nested_depth = 0
    outer_depth = 0

    for line, stripped in _iter_logical_lines(content):
        upper = stripped.upper()
        if upper.startswith("BEGIN:"):
            component = upper[6:].strip()
            if current is not None:
                nested_depth += 1
            elif component == "VEVENT":
                current = []
                nested_depth = 0
            else:
                outer_depth += 1
            continue
        if upper.startswith("END:"):
            component = upper[4:].strip()
            if current is not None:
                if nested_depth > 0:
                    nested_depth -= 1
                elif component == "VEVENT":
                    blocks.append(tokenize_block(current))
                    current = None
            elif outer_depth > 0:
                outer_depth -= 1
            continue

        if current is not None:
            if nested_depth == 0:
                current.append(line)
        elif outer_depth == 1:
            # Directly inside VCALENDAR, not inside VTIMEZONE etc.
            calendar_lines.append(line)

    if current is not None:
        logger.debug("Dropping unterminated VEVENT block (%d lines)", len(current))

    return ICSDocument(
        calendar_properties=tokenize_block(calendar_lines),
        vevent_blocks=tuple(blocks),
    )
