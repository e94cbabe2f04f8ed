"""Layout slot discovery.

Every element of ``_layout.html`` carrying a ``slot`` attribute declares one
slot. The parsed tree tells us which elements those are; the raw layout text
tells us how the author closed them (``<img slot="x" />`` vs ``<img slot="x">``
vs ``<div slot="x"></div>``), which the parser does not remember.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Optional

from slotcompiler.log import log
from slotcompiler.markup import (
    ClosingStyle,
    SourceText,
    find_opening_tag,
    is_void_element,
    opening_tag_at,
    opening_tag_closing_style,
    parse_html,
    select_with_attribute,
)

SLOT_ATTR = "slot"
SLOT_MODE_ATTR = "slot-mode"
DEFAULT_MODE = "html"
ATTR_MODE_PREFIX = "attr:"


@dataclass(frozen=True)
class SlotSpec:
    """One slot declared by the layout."""
    name: str
    mode: str
    tag: str
    closing_style: ClosingStyle
    # offset of the opening tag in the layout text
    start: Optional[int] = field(default=None, compare=False)

    @property
    def attr_name(self) -> Optional[str]:
        """Target attribute for ``attr:<name>`` modes, else None."""
        if self.mode.startswith(ATTR_MODE_PREFIX):
            return self.mode[len(ATTR_MODE_PREFIX):]
        return None


def determine_closing_style(layout_html: str, tag: str, slot_name: str,
                            start: Optional[int] = None) -> ClosingStyle:
    m = opening_tag_at(layout_html, tag, start) if start is not None else None
    if m is None:
        m = find_opening_tag(layout_html, tag, SLOT_ATTR, slot_name)
    if m is not None:
        return opening_tag_closing_style(m.group(0), tag)
    return ClosingStyle.VOID if is_void_element(tag) else ClosingStyle.EXPLICIT


def build_slot_catalog(layout_html: str) -> list[SlotSpec]:
    """Return the layout's slots in document order."""
    soup = parse_html(layout_html)
    source = SourceText(layout_html)
    slots: list[SlotSpec] = []
    for el in select_with_attribute(soup, SLOT_ATTR):
        name = el.get(SLOT_ATTR) or ""
        mode = el.get(SLOT_MODE_ATTR) or DEFAULT_MODE
        start = source.element_start(el)
        slots.append(SlotSpec(
            name=name,
            mode=mode,
            tag=el.name,
            closing_style=determine_closing_style(layout_html, el.name, name, start),
            start=start,
        ))

    if not slots:
        log("No slots in layout. Nothing to merge.", "Warn")

    dupes = sorted(n for n, c in Counter(s.name for s in slots).items() if c > 1)
    if dupes:
        log(f"Duplicate slot names in layout (only the first is filled): {', '.join(dupes)}", "Warn")

    return slots


def slot_names(catalog: list[SlotSpec]) -> list[str]:
    """Distinct slot names, first declaration order."""
    seen: list[str] = []
    for slot in catalog:
        if slot.name not in seen:
            seen.append(slot.name)
    return seen
