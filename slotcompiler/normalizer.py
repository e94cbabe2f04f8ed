"""Page self-normalization.

A normalized page lists exactly one provider per layout slot, in layout
order, separated by blank lines. Providers the author wrote are emitted
verbatim; missing ones are synthesized empty. The page keeps its own
line-ending convention and final-newline choice.

Normalizing an already normalized page is a no-op.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from slotcompiler.assets import write_if_changed
from slotcompiler.log import log
from slotcompiler.page_extractor import PageSlots, placeholder_provider
from slotcompiler.slot_catalog import SlotSpec, slot_names


@dataclass
class NormalizeResult:
    text: Optional[str]          # canonical page text, None when already canonical
    providers: dict              # slot name -> PageSlotContent, every catalog slot present
    missing: list = field(default_factory=list)
    reordered: bool = False


def expected_order(catalog: list[SlotSpec], page_slots: PageSlots) -> list[str]:
    return [name for name in slot_names(catalog) if name in page_slots]


def complete_providers(catalog: list[SlotSpec], page_slots: PageSlots) -> tuple[dict, list[str]]:
    """Page providers plus placeholders for every slot the page omits."""
    providers = dict(page_slots.providers)
    missing: list[str] = []
    for slot in catalog:
        if slot.name not in providers:
            missing.append(slot.name)
            providers[slot.name] = placeholder_provider(slot)
    return providers, missing


def canonical_text(page_html: str, catalog: list[SlotSpec], providers: dict) -> str:
    blocks = [providers[name].render() for name in slot_names(catalog)]
    text = "\n\n".join(blocks).replace("\r\n", "\n").rstrip("\n")
    if page_html.endswith("\n"):
        text += "\n"
    if "\r\n" in page_html:
        text = text.replace("\n", "\r\n")
    return text


def normalize_page(page_html: str, catalog: list[SlotSpec], page_slots: PageSlots,
                   page_name: str = "page") -> NormalizeResult:
    reordered = page_slots.order != expected_order(catalog, page_slots)
    providers, missing = complete_providers(catalog, page_slots)

    if missing:
        log(f"Added missing slots in {page_name}: {', '.join(missing)}", "Normalize")
    if reordered:
        log(f"Reordered slots to match layout for {page_name}", "Normalize")

    text = canonical_text(page_html, catalog, providers)
    original = page_html.replace("\r\n", "\n").rstrip("\n")
    if text.replace("\r\n", "\n").rstrip("\n") == original:
        return NormalizeResult(None, providers, missing, reordered)
    return NormalizeResult(text, providers, missing, reordered)


def normalize_page_file(path: str, page_html: str, catalog: list[SlotSpec],
                        page_slots: PageSlots, page_name: str) -> NormalizeResult:
    """Normalize and rewrite the page on disk when its canonical form differs.

    Raises OSError when the rewrite fails.
    """
    result = normalize_page(page_html, catalog, page_slots, page_name)
    if result.text is not None and write_if_changed(path, result.text):
        log(f"Wrote {page_name}", "Normalize")
    return result
