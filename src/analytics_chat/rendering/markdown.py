"""Tokenizer for the light markdown the backend uses in explanations.

Parsing produces typed nodes only; presentation lives in the renderers so the
grammar can be tested on its own.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Bold:
    text: str


@dataclass(frozen=True)
class Italic:
    text: str


@dataclass(frozen=True)
class Code:
    text: str


Inline = Text | Bold | Italic | Code


@dataclass(frozen=True)
class Paragraph:
    inlines: list[Inline]


@dataclass(frozen=True)
class ListItem:
    inlines: list[Inline]
    number: str | None = None


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: list[ListItem] = field(default_factory=list)


@dataclass(frozen=True)
class Spacer:
    pass


Block = Paragraph | ListBlock | Spacer

_INLINE_PATTERN = re.compile(r"(\*\*.+?\*\*|\*[^*]+?\*|`[^`]+?`)")
_ORDERED_ITEM = re.compile(r"^(\d+\.)\s(.*)")
_BULLET_ITEM = re.compile(r"^[-*]\s(.*)")


def tokenize_inline(text: str) -> list[Inline]:
    nodes: list[Inline] = []
    for part in _INLINE_PATTERN.split(text):
        if not part:
            continue
        if len(part) >= 4 and part.startswith("**") and part.endswith("**"):
            nodes.append(Bold(part[2:-2]))
        elif len(part) >= 2 and part.startswith("`") and part.endswith("`"):
            nodes.append(Code(part[1:-1]))
        elif len(part) >= 2 and part.startswith("*") and part.endswith("*") and not part.startswith("**"):
            nodes.append(Italic(part[1:-1]))
        elif nodes and isinstance(nodes[-1], Text):
            nodes[-1] = Text(nodes[-1].text + part)
        else:
            nodes.append(Text(part))
    return nodes


def parse_markdown(text: str) -> list[Block]:
    blocks: list[Block] = []
    current: ListBlock | None = None
    lines = text.split("\n")

    for index, line in enumerate(lines):
        stripped = line.strip()

        ordered = _ORDERED_ITEM.match(stripped)
        bullet = None if ordered else _BULLET_ITEM.match(stripped)

        if ordered or bullet:
            is_ordered = ordered is not None
            if current is None or current.ordered != is_ordered:
                current = ListBlock(ordered=is_ordered)
                blocks.append(current)
            if ordered:
                current.items.append(ListItem(tokenize_inline(ordered.group(2)), number=ordered.group(1)))
            else:
                current.items.append(ListItem(tokenize_inline(bullet.group(1))))
            continue

        current = None
        if stripped:
            blocks.append(Paragraph(tokenize_inline(line)))
        elif index < len(lines) - 1:
            blocks.append(Spacer())

    return blocks


def plain_text(inlines: list[Inline]) -> str:
    return "".join(node.text for node in inlines)
