"""Page provider discovery.

A page supplies slot content through elements carrying ``for-slot``. The
first provider for a name wins; later duplicates are ignored, not merged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from slotcompiler.markup import (
    ClosingStyle,
    SourceText,
    element_attributes,
    escape_attr,
    is_void_element,
    parse_html,
    select_with_attribute,
)
from slotcompiler.slot_catalog import SlotSpec

FOR_SLOT_ATTR = "for-slot"


class UnknownSlotError(Exception):
    """A page provides content for slots the layout does not declare."""

    def __init__(self, page: str, slots: list[str]):
        self.page = page
        self.slots = slots
        super().__init__(f"{page} has unknown slots: {', '.join(slots)}")


@dataclass
class PageSlotContent:
    tag: str
    inner_html: str
    attributes: dict
    original_html: Optional[str]
    closing_style: ClosingStyle

    def render(self) -> str:
        if self.original_html is not None:
            return self.original_html
        return build_markup(self.tag, self.attributes, self.inner_html, self.closing_style)


@dataclass
class PageSlots:
    """Providers keyed by slot name, plus the order they were first seen."""
    providers: dict = field(default_factory=dict)
    order: list = field(default_factory=list)

    def __contains__(self, name: str) -> bool:
        return name in self.providers

    def get(self, name: str) -> Optional[PageSlotContent]:
        return self.providers.get(name)


def _attr_sort_key(name: str) -> tuple[int, str]:
    return (0, "") if name == FOR_SLOT_ATTR else (1, name)


def build_markup(tag: str, attributes: dict, inner_html: str,
                 closing_style: ClosingStyle) -> str:
    """Synthesize provider markup with ``for-slot`` first, other attributes sorted."""
    attr_string = "".join(
        f' {key}="{escape_attr(attributes[key])}"'
        for key in sorted(attributes, key=_attr_sort_key)
    )
    if closing_style is ClosingStyle.SELF_CLOSING:
        return f"<{tag}{attr_string} />"
    if closing_style is ClosingStyle.VOID:
        return f"<{tag}{attr_string}>"
    return f"<{tag}{attr_string}>{inner_html}</{tag}>"


def provider_closing_style(outer_html: str, tag: str) -> ClosingStyle:
    trimmed = outer_html.rstrip()
    has_close = f"</{tag.lower()}" in trimmed.lower()
    if trimmed.endswith("/>") and not has_close:
        return ClosingStyle.SELF_CLOSING
    if has_close:
        return ClosingStyle.EXPLICIT
    if is_void_element(tag):
        return ClosingStyle.VOID
    return ClosingStyle.EXPLICIT


def extract_page_slots(page_html: str) -> PageSlots:
    soup = parse_html(page_html)
    source = SourceText(page_html)
    result = PageSlots()

    for el in select_with_attribute(soup, FOR_SLOT_ATTR):
        name = el.get(FOR_SLOT_ATTR)
        if name is None or name in result.providers:
            continue
        outer, inner = source.outer_and_inner(el)
        result.providers[name] = PageSlotContent(
            tag=el.name,
            inner_html=inner,
            attributes=element_attributes(el),
            original_html=outer or None,
            closing_style=provider_closing_style(outer, el.name),
        )
        result.order.append(name)

    return result


def find_unknown_slots(page_slots: PageSlots, catalog: list[SlotSpec]) -> list[str]:
    known = {slot.name for slot in catalog}
    return [name for name in page_slots.order if name not in known]


def placeholder_provider(slot: SlotSpec) -> PageSlotContent:
    """Empty provider for a slot the page does not fill yet."""
    attributes = {FOR_SLOT_ATTR: slot.name}
    if slot.attr_name:
        attributes[slot.attr_name] = ""
    return PageSlotContent(
        tag=slot.tag,
        inner_html="",
        attributes=attributes,
        original_html=None,
        closing_style=slot.closing_style,
    )
