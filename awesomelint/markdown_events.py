"""A flat stream of start, end and text events over a Markdown document."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Iterator

from markdown_it import MarkdownIt
from markdown_it.token import Token


class EventKind(enum.Enum):
    START = "start"
    END = "end"
    TEXT = "text"
    CODE = "code"
    HTML = "html"
    SOFT_BREAK = "soft_break"
    HARD_BREAK = "hard_break"
    RULE = "rule"


class TagKind(enum.Enum):
    PARAGRAPH = "paragraph"
    HEADING = "heading"
    BLOCK_QUOTE = "block_quote"
    CODE_BLOCK = "code_block"
    LIST = "list"
    ITEM = "item"
    EMPHASIS = "emphasis"
    STRONG = "strong"
    LINK = "link"
    IMAGE = "image"
    OTHER = "other"


@dataclass(frozen=True)
class Event:
    """One event; ``tag`` is set for START and END, ``text`` for textual events."""

    kind: EventKind
    tag: TagKind | None = None
    text: str | None = None
    url: str | None = None
    level: int | None = None


_BLOCK_TAGS = {
    "paragraph": TagKind.PARAGRAPH,
    "heading": TagKind.HEADING,
    "blockquote": TagKind.BLOCK_QUOTE,
    "bullet_list": TagKind.LIST,
    "ordered_list": TagKind.LIST,
    "list_item": TagKind.ITEM,
}

_INLINE_TAGS = {
    "em": TagKind.EMPHASIS,
    "strong": TagKind.STRONG,
}


def _keep_destination(url: str) -> str:
    return url


def _make_parser() -> MarkdownIt:
    parser = MarkdownIt("commonmark")
    # Link destinations are reported as written, without percent-encoding.
    parser.normalizeLink = _keep_destination
    return parser


_PARSER = _make_parser()


def _split_type(token_type: str) -> tuple[str, EventKind | None]:
    if token_type.endswith("_open"):
        return token_type[: -len("_open")], EventKind.START
    if token_type.endswith("_close"):
        return token_type[: -len("_close")], EventKind.END
    return token_type, None


def _inline_events(children: Iterable[Token]) -> Iterator[Event]:
    for child in children:
        kind = child.type
        if kind in ("text", "text_special"):
            if child.content:
                yield Event(EventKind.TEXT, text=child.content)
        elif kind == "code_inline":
            yield Event(EventKind.CODE, text=child.content)
        elif kind == "softbreak":
            yield Event(EventKind.SOFT_BREAK)
        elif kind == "hardbreak":
            yield Event(EventKind.HARD_BREAK)
        elif kind == "html_inline":
            yield Event(EventKind.HTML, text=child.content)
        elif kind == "image":
            yield Event(EventKind.START, TagKind.IMAGE, url=str(child.attrGet("src") or ""))
            yield from _inline_events(child.children or [])
            yield Event(EventKind.END, TagKind.IMAGE)
        elif kind == "link_open":
            yield Event(EventKind.START, TagKind.LINK, url=str(child.attrGet("href") or ""))
        elif kind == "link_close":
            yield Event(EventKind.END, TagKind.LINK)
        else:
            base, edge = _split_type(kind)
            if edge is not None:
                yield Event(edge, _INLINE_TAGS.get(base, TagKind.OTHER))


def _block_events(token: Token) -> Iterator[Event]:
    kind = token.type
    if kind == "inline":
        yield from _inline_events(token.children or [])
    elif kind in ("fence", "code_block"):
        yield Event(EventKind.START, TagKind.CODE_BLOCK)
        if token.content:
            yield Event(EventKind.TEXT, text=token.content)
        yield Event(EventKind.END, TagKind.CODE_BLOCK)
    elif kind == "html_block":
        yield Event(EventKind.HTML, text=token.content)
    elif kind == "hr":
        yield Event(EventKind.RULE)
    else:
        base, edge = _split_type(kind)
        if edge is None or token.hidden:
            return
        tag = _BLOCK_TAGS.get(base, TagKind.OTHER)
        level = int(token.tag[1:]) if tag is TagKind.HEADING else None
        yield Event(edge, tag, level=level)


def iter_events(markdown_text: str) -> Iterator[Event]:
    """Yield the events of ``markdown_text`` in document order."""
    for token in _PARSER.parse(markdown_text):
        yield from _block_events(token)