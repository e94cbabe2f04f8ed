"""Filesystem side of a build: asset mirroring, stale-output cleanup, and
compare-then-write helpers.

Assets are every source file that is not a page document. Each one is
mirrored under the output root at the same relative path and copied only
when the destination is missing or its SHA-256 differs.
"""

from __future__ import annotations

import hashlib
import os
import shutil
from typing import List, Set

from slotcompiler.config import LAYOUT_NAME, PAGE_EXTENSION
from slotcompiler.log import log

CHUNK_SIZE = 65536


def _norm_relpath(rel: str) -> str:
    return rel.replace("\\", "/")


def sha256_file(path: str) -> str:
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()


def files_equal(a: str, b: str) -> bool:
    return sha256_file(a) == sha256_file(b)


def read_text(path: str) -> str:
    # newline="" keeps CRLF intact
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_if_changed(path: str, contents: str) -> bool:
    """Write ``contents`` unless the file already holds exactly that text.

    Returns True when the file was written.
    """
    try:
        if read_text(path) == contents:
            return False
    except (OSError, UnicodeDecodeError):
        pass
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(contents)
    return True


def is_page_file(name: str, page_extension: str = PAGE_EXTENSION) -> bool:
    return name.lower().endswith(page_extension.lower())


def list_pages(src_dir: str, layout_name: str = LAYOUT_NAME,
               page_extension: str = PAGE_EXTENSION) -> List[str]:
    """Top-level page documents under ``src_dir`` (layout excluded), sorted."""
    pages = []
    for entry in sorted(os.listdir(src_dir)):
        fp = os.path.join(src_dir, entry)
        if not os.path.isfile(fp) or not is_page_file(entry, page_extension):
            continue
        if entry.lower() == layout_name.lower():
            continue
        pages.append(fp)
    return pages


def list_assets(src_dir: str, page_extension: str = PAGE_EXTENSION) -> List[str]:
    """Relative paths (forward slashes) of every non-page file under ``src_dir``."""
    out: List[str] = []
    for dirpath, dirnames, filenames in os.walk(src_dir):
        dirnames.sort()
        for fn in sorted(filenames):
            if is_page_file(fn, page_extension):
                continue
            rel = os.path.relpath(os.path.join(dirpath, fn), src_dir)
            out.append(_norm_relpath(rel))
    return out


def copy_assets_diff(src_dir: str, out_dir: str,
                     page_extension: str = PAGE_EXTENSION) -> List[str]:
    """Mirror changed assets into ``out_dir``. Returns the relative paths copied."""
    copied: List[str] = []
    for rel in list_assets(src_dir, page_extension):
        src = os.path.join(src_dir, rel)
        dest = os.path.join(out_dir, rel)
        try:
            if os.path.exists(dest) and files_equal(src, dest):
                continue
            os.makedirs(os.path.dirname(dest), exist_ok=True)
            shutil.copy2(src, dest)
        except OSError as e:
            log(f"Failed to copy {rel}: {e}", "Error")
            continue
        log(f"Copied {rel}", "Assets")
        copied.append(rel)
    return copied


def expected_output_set(src_dir: str, layout_name: str = LAYOUT_NAME,
                        page_extension: str = PAGE_EXTENSION) -> Set[str]:
    expected = {os.path.basename(p) for p in list_pages(src_dir, layout_name, page_extension)}
    expected.update(list_assets(src_dir, page_extension))
    return expected


def clean_output_dir(src_dir: str, out_dir: str, layout_name: str = LAYOUT_NAME,
                     page_extension: str = PAGE_EXTENSION) -> List[str]:
    """Remove outputs with no source counterpart, then empty directories.

    Returns the relative paths removed.
    """
    if not os.path.exists(out_dir):
        os.makedirs(out_dir, exist_ok=True)
        return []

    expected = expected_output_set(src_dir, layout_name, page_extension)
    removed: List[str] = []
    for dirpath, _dirnames, filenames in os.walk(out_dir):
        for fn in filenames:
            fp = os.path.join(dirpath, fn)
            rel = _norm_relpath(os.path.relpath(fp, out_dir))
            if rel in expected:
                continue
            try:
                os.remove(fp)
            except OSError as e:
                log(f"Failed to remove {rel}: {e}", "Warn")
                continue
            log(f"Removed {rel}", "Cleanup")
            removed.append(rel)

    dirs = [dirpath for dirpath, _, _ in os.walk(out_dir) if dirpath != out_dir]
    # deepest first
    dirs.sort(key=lambda d: d.count(os.sep), reverse=True)
    for d in dirs:
        if os.listdir(d):
            continue
        try:
            os.rmdir(d)
        except OSError as e:
            log(f"Failed to remove directory {d}: {e}", "Warn")
    return removed


def remove_output_for_path(src_dir: str, out_dir: str, path: str,
                           layout_name: str = LAYOUT_NAME) -> bool:
    """Delete the output mirroring a source path that no longer exists."""
    name = os.path.basename(path)
    if name.lower() == layout_name.lower():
        return False

    abs_src = os.path.abspath(src_dir)
    abs_path = os.path.abspath(path)
    if os.path.commonpath([abs_src, abs_path]) == abs_src and abs_path != abs_src:
        rel = os.path.relpath(abs_path, abs_src)
    elif name:
        rel = name
    else:
        return False

    dest = os.path.join(out_dir, rel)
    if not os.path.exists(dest):
        return False
    try:
        if os.path.isdir(dest):
            shutil.rmtree(dest)
        else:
            os.remove(dest)
    except OSError as e:
        log(f"Failed to remove {_norm_relpath(rel)}: {e}", "Error")
        return False
    log(f"Removed {_norm_relpath(rel)}", "Cleanup")
    return True
