"""
Tree parser for the compact journal notation.

    . !!! Buy groceries
      - Context
    o Standup

Each non-blank line is `<indent><symbol>[ <priority>] <content>`.
Two spaces (or one tab) per level; the parent of a line is the nearest
preceding line one level shallower.

Public API
----------
split_indent(line)  -> (depth, rest)
parse_body(rest)    -> (EntryType, Priority, content)
TreeParser().parse(text) -> list[ParsedEntry]
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bujo.core.errors import ValidationError
from bujo.domain.entry import (
    PRIORITIES_BY_MARKER,
    PRIORITY_RE,
    TYPES_BY_SYMBOL,
    EntryType,
    Priority,
)


@dataclass
class ParsedEntry:
    type: EntryType
    content: str
    priority: Priority = Priority.none
    depth: int = 0
    parent_index: Optional[int] = None
    line_number: int = 0


def split_indent(line: str) -> tuple[int, str]:
    width = 0
    for i, ch in enumerate(line):
        if ch == " ":
            width += 1
        elif ch == "\t":
            width += 2
        else:
            rest = line[i:]
            break
    else:
        rest = ""
    if width % 2:
        raise ValidationError("invalid indentation: odd number of spaces")
    return width // 2, rest.rstrip()


def parse_body(rest: str) -> tuple[EntryType, Priority, str]:
    if not rest:
        raise ValidationError("empty line")
    entry_type = TYPES_BY_SYMBOL.get(rest[0])
    if entry_type is None:
        raise ValidationError(f"unknown entry symbol {rest[0]!r}")
    tail = rest[1:]
    if tail and not tail[0].isspace() and tail[0] != "!":
        raise ValidationError(f"symbol {rest[0]!r} must be followed by a space")
    tail = tail.strip()

    priority = Priority.none
    m = PRIORITY_RE.match(tail)
    if m:
        priority = PRIORITIES_BY_MARKER[m.group(1)]
        tail = tail[m.end():].strip()

    if not tail:
        raise ValidationError("entry content is empty")
    return entry_type, priority, tail


class TreeParser:
    """Turns a text block into a parent-linked list of entries."""

    def parse(self, text: str) -> list[ParsedEntry]:
        entries: list[ParsedEntry] = []
        stack: list[int] = []

        for number, line in enumerate((text or "").splitlines(), start=1):
            if not line.strip():
                continue
            try:
                depth, rest = split_indent(line)
                entry_type, priority, content = parse_body(rest)
            except ValidationError as exc:
                raise ValidationError(
                    f"line {number}: {exc.message}",
                    details={"line": number, "text": line},
                ) from exc

            if depth > len(stack):
                raise ValidationError(
                    f"line {number}: invalid indentation: child without parent at correct depth",
                    details={"line": number, "text": line},
                )
            del stack[depth:]
            parent = stack[-1] if stack else None
            stack.append(len(entries))
            entries.append(ParsedEntry(
                type=entry_type,
                content=content,
                priority=priority,
                depth=depth,
                parent_index=parent,
                line_number=number,
            ))

        return entries
