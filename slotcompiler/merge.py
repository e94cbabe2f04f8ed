"""Splice page content into the raw layout text.

Slots are located on the untouched layout first and spliced back to front,
so content inserted for one slot is never searched for another, and every
byte outside the slot elements comes through unchanged.

Per closing style:
  - self-closing / void: only the opening tag is rewritten (``slot`` and
    ``slot-mode`` dropped, ``attr:<n>`` value injected)
  - explicit: the opening tag is cleaned the same way and the region up to
    the first ``</tag>`` is replaced by the provider's inner markup, except
    in ``attr:<n>`` mode where the inner region is kept
"""

from __future__ import annotations

from slotcompiler.log import log
from slotcompiler.markup import (
    ClosingStyle,
    escape_attr,
    find_closing_tag,
    find_opening_tag,
    opening_tag_at,
    split_tag_ending,
    strip_attribute,
)
from slotcompiler.page_extractor import PageSlotContent
from slotcompiler.slot_catalog import SLOT_ATTR, SLOT_MODE_ATTR, SlotSpec


def rewrite_opening_tag(opening: str, slot: SlotSpec, content: PageSlotContent) -> str:
    head, ending = split_tag_ending(opening)
    head = strip_attribute(head, SLOT_ATTR)
    head = strip_attribute(head, SLOT_MODE_ATTR)
    attr = slot.attr_name
    if attr:
        value = content.attributes.get(attr)
        if value is not None:
            head = strip_attribute(head, attr).rstrip()
            head += f' {attr}="{escape_attr(value)}"'
    return head.rstrip() + ending


def slot_edit(layout_html: str, slot: SlotSpec, content: PageSlotContent):
    """Return ``(start, end, replacement)`` for one slot, or None if not found."""
    opening = None
    if slot.start is not None:
        opening = opening_tag_at(layout_html, slot.tag, slot.start)
    if opening is None:
        opening = find_opening_tag(layout_html, slot.tag, SLOT_ATTR, slot.name)
    if opening is None:
        log(f"Slot '{slot.name}' not found as <{slot.tag}> in layout text", "Warn")
        return None

    new_opening = rewrite_opening_tag(opening.group(0), slot, content)
    if slot.closing_style in (ClosingStyle.SELF_CLOSING, ClosingStyle.VOID):
        return opening.start(), opening.end(), new_opening

    closing = find_closing_tag(layout_html, slot.tag, opening.end())
    if closing is None:
        log(f"Slot '{slot.name}' has no closing </{slot.tag}> in layout", "Warn")
        return None
    if slot.attr_name:
        return opening.start(), opening.end(), new_opening
    return opening.start(), closing.start(), new_opening + content.inner_html


def merge_layout(layout_html: str, catalog: list[SlotSpec], providers: dict) -> str:
    """Produce one output document from the layout and a page's providers."""
    edits = []
    seen = set()
    for slot in catalog:
        if slot.name in seen:
            continue
        seen.add(slot.name)
        content = providers.get(slot.name)
        if content is None:
            continue
        edit = slot_edit(layout_html, slot, content)
        if edit is not None:
            edits.append(edit)

    edits.sort(key=lambda e: e[0])
    kept = []
    last_end = -1
    for start, end, replacement in edits:
        if start < last_end:
            log(f"Skipping overlapping slot region at offset {start} (nested slots)", "Warn")
            continue
        kept.append((start, end, replacement))
        last_end = end

    out = layout_html
    for start, end, replacement in reversed(kept):
        out = out[:start] + replacement + out[end:]
    return out
