"""Two read models over one HTML document.

The parsed tree (BeautifulSoup, ``html.parser`` backend) answers structural
questions: which elements carry ``slot`` / ``for-slot``, what their
attributes are. The raw text answers byte questions: where exactly an
opening tag starts and ends, whether the author wrote ``/>``, what lies
between an element's tags. The parser normalizes markup (auto-closing,
quote style, void notation), so anything written back to disk is sliced
from the raw text, never re-serialized from the tree, unless slicing fails.
"""

from __future__ import annotations

import enum
import re
from typing import Iterator, Optional

from bs4 import BeautifulSoup, Tag

VOID_TAGS = frozenset({
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "param", "source", "track", "wbr",
})

# Elements whose content the parser reads as plain text
RAW_TEXT_TAGS = frozenset({"script", "style"})


class ClosingStyle(enum.Enum):
    EXPLICIT = "explicit"
    SELF_CLOSING = "self_closing"
    VOID = "void"


def is_void_element(tag: str) -> bool:
    return tag.lower() in VOID_TAGS


# ─── Parsed tree ────────────────────────────────────────────────────────────

def parse_html(text: str) -> BeautifulSoup:
    # multi_valued_attributes=None keeps class="a b" as one string
    return BeautifulSoup(text, "html.parser", multi_valued_attributes=None)


def select_with_attribute(soup: BeautifulSoup, attr: str) -> list[Tag]:
    """All elements carrying ``attr``, in document order."""
    return soup.find_all(attrs={attr: True})


def element_attributes(el: Tag) -> dict[str, str]:
    attrs = {}
    for key, value in el.attrs.items():
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attrs[key] = "" if value is None else str(value)
    return attrs


def serialize_outer(el: Tag) -> str:
    return el.decode()


def serialize_inner(el: Tag) -> str:
    return el.decode_contents()


# ─── Raw text ───────────────────────────────────────────────────────────────

# Attribute list that skips over quoted values, so a '>' inside a value does
# not end the tag.
_ATTRS = r"""((?:[^>"']|"[^"]*"|'[^']*')*)"""

_ENDING_RE = re.compile(r"(?s)^(.*?)(\s*/?>)$")


def _tag_token_re(tag: str) -> re.Pattern:
    return re.compile(
        r"<(/?)" + re.escape(tag) + r"(?![\w:-])" + _ATTRS + ">",
        re.IGNORECASE | re.DOTALL,
    )


def _attr_value_re(attr: str, value: str) -> re.Pattern:
    v = re.escape(value)
    return re.compile(
        r"(?<![\w:.-])" + re.escape(attr)
        + r"""\s*=\s*(?:"%s"|'%s'|%s(?=[\s/>]|$))""" % (v, v, v),
        re.IGNORECASE,
    )


def _opaque_re(tag: str) -> re.Pattern:
    """Comments and script/style bodies, where tag-like text is not markup."""
    parts = [r"<!--.*?(?:-->|\Z)"]
    for raw in sorted(RAW_TEXT_TAGS - {tag.lower()}):
        parts.append(
            r"<" + raw + r"(?![\w:-])" + _ATTRS + r">.*?(?:</" + raw + r"\s*>|\Z)"
        )
    return re.compile("|".join(parts), re.IGNORECASE | re.DOTALL)


def iter_tag_tokens(text: str, tag: str, start: int = 0) -> Iterator[re.Match]:
    """Opening and closing ``tag`` tokens at or after ``start``, in order.

    Tokens inside comments and script/style bodies are skipped.
    """
    token_re = _tag_token_re(tag)
    opaque_re = _opaque_re(tag)
    opaque = opaque_re.search(text, start)
    pos = start
    while True:
        token = token_re.search(text, pos)
        if token is None:
            return
        if opaque is not None and opaque.start() < token.start():
            pos = max(pos, opaque.end())
            opaque = opaque_re.search(text, pos)
            continue
        yield token
        pos = token.end()


def opening_tag_at(text: str, tag: str, offset: int) -> Optional[re.Match]:
    """The opening ``tag`` token starting exactly at ``offset``, or None."""
    m = _tag_token_re(tag).match(text, offset)
    if m is None or m.group(1):
        return None
    return m


def find_opening_tag(text: str, tag: str, attr: str, value: str,
                     start: int = 0) -> Optional[re.Match]:
    """First literal opening tag ``<tag ... attr="value" ...>`` at or after ``start``.

    Tag names match case-insensitively, the attribute value exactly.
    """
    value_re = _attr_value_re(attr, value)
    for m in iter_tag_tokens(text, tag, start):
        if m.group(1):
            continue
        if value_re.search(m.group(2)):
            return m
    return None


def find_closing_tag(text: str, tag: str, start: int) -> Optional[re.Match]:
    """First ``</tag>`` at or after ``start`` (shortest match, no nesting)."""
    for m in iter_tag_tokens(text, tag, start):
        if m.group(1):
            return m
    return None


def find_matching_close(text: str, tag: str, start: int) -> Optional[re.Match]:
    """Closing tag balancing an opening tag that ended at ``start``.

    Nested elements of the same name are counted so the outer close is found.
    """
    depth = 1
    for m in iter_tag_tokens(text, tag, start):
        if m.group(1):
            depth -= 1
            if depth == 0:
                return m
        elif not m.group(0).rstrip().endswith("/>"):
            depth += 1
    return None


def opening_tag_closing_style(opening: str, tag: str) -> ClosingStyle:
    if opening.rstrip().endswith("/>"):
        return ClosingStyle.SELF_CLOSING
    if is_void_element(tag):
        return ClosingStyle.VOID
    return ClosingStyle.EXPLICIT


def split_tag_ending(opening: str) -> tuple[str, str]:
    """Split ``<img a="1" />`` into ``('<img a="1"', ' />')``."""
    m = _ENDING_RE.match(opening)
    if not m:
        return opening, ""
    return m.group(1), m.group(2)


def strip_attribute(fragment: str, attr: str) -> str:
    pattern = re.compile(
        r"""\s+""" + re.escape(attr) + r"""\s*=\s*(?:"[^"]*"|'[^']*'|[^\s"'=<>`/]+)""",
        re.IGNORECASE,
    )
    return pattern.sub("", fragment)


def escape_attr(value: str) -> str:
    return value.replace('"', "&quot;")


class SourceText:
    """Raw document text with a line index for the parser's source positions."""

    def __init__(self, text: str):
        self.text = text
        self._line_starts = [0]
        for m in re.finditer("\n", text):
            self._line_starts.append(m.end())

    def offset(self, line: int, column: int) -> int:
        return self._line_starts[line - 1] + column

    def element_start(self, el: Tag) -> Optional[int]:
        """Offset of ``el``'s opening tag, or None when the parser recorded no
        usable position."""
        line = getattr(el, "sourceline", None)
        column = getattr(el, "sourcepos", None)
        if line is None or column is None or line > len(self._line_starts):
            return None
        start = self.offset(line, column)
        if opening_tag_at(self.text, el.name, start) is None:
            return None
        return start

    def element_span(self, el: Tag) -> Optional[tuple[int, int, int, int]]:
        """Locate ``el`` in the raw text.

        Returns ``(start, open_end, close_start, end)``; for elements with no
        closing tag ``open_end == close_start == end``. ``None`` when the
        parser recorded no position or the text there does not match.
        """
        start = self.element_start(el)
        if start is None:
            return None
        opening = opening_tag_at(self.text, el.name, start)
        open_end = opening.end()
        if opening.group(0).rstrip().endswith("/>") or is_void_element(el.name):
            return start, open_end, open_end, open_end
        close = find_matching_close(self.text, el.name, open_end)
        if close is None:
            return None
        return start, open_end, close.start(), close.end()

    def outer_and_inner(self, el: Tag) -> tuple[str, str]:
        """Verbatim outer and inner markup of ``el``, serialized as a fallback.

        A slice is only used when it parses back to the same element.
        """
        span = self.element_span(el)
        if span is not None:
            start, open_end, close_start, end = span
            outer = self.text[start:end]
            if same_element(outer, el):
                return outer, self.text[open_end:close_start]
        return serialize_outer(el), serialize_inner(el)


def same_element(fragment: str, el: Tag) -> bool:
    reparsed = parse_html(fragment).find(True)
    return reparsed is not None and reparsed.decode() == el.decode()
