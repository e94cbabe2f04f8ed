"""Build pipeline: layout + pages -> output documents.

One build reads the layout once, builds the slot catalog, then for each
page: extract providers, reject unknown slots, normalize the page source in
place, merge into the layout, write the output. Assets are synced last.

A page that fails (unreadable, unknown slots, write error) is logged and
skipped; the build carries on and reports failure at the end.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from slotcompiler.assets import (
    clean_output_dir,
    copy_assets_diff,
    list_pages,
    read_text,
    remove_output_for_path,
    write_if_changed,
)
from slotcompiler.config import CompilerConfig
from slotcompiler.log import format_with_commas, log
from slotcompiler.merge import merge_layout
from slotcompiler.normalizer import normalize_page_file
from slotcompiler.page_extractor import UnknownSlotError, extract_page_slots, find_unknown_slots
from slotcompiler.slot_catalog import SlotSpec, build_slot_catalog


class FatalBuildError(Exception):
    """Source directory or layout missing; nothing can be built."""


@dataclass
class RebuildPlan:
    full: bool = True
    pages: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)


def check_sources(src_dir: str, layout_name: str) -> str:
    """Return the layout path, raising FatalBuildError when inputs are missing."""
    src = Path(src_dir)
    if not src.is_dir():
        raise FatalBuildError(f"Source directory not found: {src_dir}")
    layout_path = src / layout_name
    if not layout_path.is_file():
        raise FatalBuildError(f"Missing {layout_path}")
    return str(layout_path)


class SiteCompiler:

    def __init__(self, src_dir: str, out_dir: str, config: Optional[CompilerConfig] = None):
        self.config = config or CompilerConfig()
        check_sources(src_dir, self.config.layout_name)
        self.src_dir = str(Path(src_dir).resolve())
        self.out_dir = os.path.abspath(out_dir)
        self.layout_path = str(Path(self.src_dir) / self.config.layout_name)

    def clean_output_dir(self) -> List[str]:
        return clean_output_dir(self.src_dir, self.out_dir,
                                self.config.layout_name, self.config.page_extension)

    def list_pages(self) -> List[str]:
        return list_pages(self.src_dir, self.config.layout_name, self.config.page_extension)

    def output_path(self, page_path: str) -> str:
        return str(Path(self.out_dir) / Path(page_path).name)

    def discard_output(self, page_path: str) -> None:
        """Delete the output an earlier build left for a page that now fails."""
        output = Path(self.output_path(page_path))
        if not output.is_file():
            return
        try:
            output.unlink()
        except OSError as e:
            log(f"Failed to remove {output.name}: {e}", "Warn")
            return
        log(f"Removed {output.name}", "Cleanup")

    def compile_page(self, path: str, layout_html: str, catalog: List[SlotSpec]) -> bool:
        """Build one page. Returns True when the output file was (re)written.

        Raises UnknownSlotError or OSError; nothing is written for the page then.
        """
        name = Path(path).name
        page_html = read_text(path)
        page_slots = extract_page_slots(page_html)

        unknown = find_unknown_slots(page_slots, catalog)
        if unknown:
            raise UnknownSlotError(name, unknown)

        result = normalize_page_file(path, page_html, catalog, page_slots, name)
        output = merge_layout(layout_html, catalog, result.providers)
        return write_if_changed(self.output_path(path), output)

    def build_once(self, plan: Optional[RebuildPlan] = None) -> bool:
        """Run one build. Returns True when every page built."""
        start = time.monotonic()
        log(datetime.now().strftime("%H:%M:%S"), "Build")
        Path(self.out_dir).mkdir(parents=True, exist_ok=True)

        try:
            layout_html = read_text(self.layout_path)
        except (OSError, UnicodeDecodeError) as e:
            log(f"Cannot read layout {self.layout_path}: {e}", "Error")
            return False

        catalog = build_slot_catalog(layout_html)
        plan = plan or RebuildPlan(full=True)

        for path in plan.removed:
            remove_output_for_path(self.src_dir, self.out_dir, path, self.config.layout_name)

        pages = self.list_pages() if plan.full else plan.pages
        ok = True
        for path in pages:
            name = Path(path).name
            if not Path(path).exists():
                continue
            try:
                written = self.compile_page(path, layout_html, catalog)
            except UnknownSlotError as e:
                log(str(e), "Error")
                self.discard_output(path)
                ok = False
                continue
            except (OSError, UnicodeDecodeError) as e:
                log(f"{name}: {e}", "Error")
                self.discard_output(path)
                ok = False
                continue
            log(f"Built {name}" if written else f"Built {name} (unchanged)", "Build")

        copy_assets_diff(self.src_dir, self.out_dir, self.config.page_extension)
        elapsed_ms = int((time.monotonic() - start) * 1000)
        log(f"Complete in {format_with_commas(elapsed_ms)} ms.", "Build")
        return ok
