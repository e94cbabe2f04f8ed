"""Watch mode: change notifications -> debounced, incremental rebuilds.

The event source (a watchdog observer) runs on a background thread and puts
changed paths on a queue. ``RebuildScheduler.run`` is the single consumer:
it collects paths into a pending set, waits until no new event has arrived
for the debounce window, then drains the set and runs one build.

Which build:
  - full: empty batch, any path that vanished (after a short retry), the
    layout itself, or a page that has no output yet
  - partial: only the distinct existing pages named in the batch

Vanished paths also get their output artifact removed.
"""

from __future__ import annotations

import os
import queue
import threading
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers.polling import PollingObserver as Observer

from slotcompiler.compiler import RebuildPlan, SiteCompiler
from slotcompiler.config import CompilerConfig
from slotcompiler.log import log

IDLE = "idle"
PENDING = "pending"


# ─── Path classification ────────────────────────────────────────────────────

def resolve_path(path: str, src_dir: str) -> str:
    p = Path(path)
    if not p.is_absolute():
        p = Path(src_dir) / p
    return str(p.resolve())


def is_under(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False


def paths_equivalent(a: str, b: str) -> bool:
    if a == b:
        return True
    try:
        return os.path.samefile(a, b)
    except OSError:
        return os.path.realpath(a) == os.path.realpath(b)


def path_missing_with_retry(path: str, retries: int, delay: float,
                            sleep: Callable[[float], None] = time.sleep) -> bool:
    """True when ``path`` is still absent after ``retries`` extra checks.

    Editors that save via write-temp-then-rename make a file vanish briefly.
    """
    target = Path(path)
    if target.exists():
        return False
    for _ in range(retries):
        sleep(delay)
        if target.exists():
            return False
    return True


def is_layout_path(path: str, compiler: SiteCompiler) -> bool:
    if paths_equivalent(path, compiler.layout_path):
        return True
    p = Path(path)
    if compiler.config.is_layout_name(p.name):
        return paths_equivalent(str(p.parent), compiler.src_dir)
    return False


def page_for_path(path: str, compiler: SiteCompiler) -> Optional[str]:
    """The buildable page ``path`` refers to, or None."""
    candidate = resolve_path(path, compiler.src_dir)
    if not Path(candidate).is_file():
        return None
    if not is_under(candidate, compiler.src_dir):
        return None
    if is_layout_path(candidate, compiler):
        return None
    if not compiler.config.is_page_name(candidate):
        return None
    return candidate


def plan_rebuild(changed: Optional[Iterable[str]], compiler: SiteCompiler,
                 sleep: Callable[[float], None] = time.sleep) -> RebuildPlan:
    if changed is None:
        return RebuildPlan(full=True)

    cfg = compiler.config
    paths = sorted({resolve_path(p, compiler.src_dir) for p in changed})
    removed = [
        p for p in paths
        if path_missing_with_retry(p, cfg.missing_retries, cfg.missing_retry_delay_seconds, sleep)
    ]

    full = not paths or bool(removed) or any(is_layout_path(p, compiler) for p in paths)
    if not full:
        full = any(not Path(compiler.output_path(p)).exists() for p in compiler.list_pages())
    if full:
        return RebuildPlan(full=True, removed=removed)

    pages: List[str] = []
    for p in paths:
        page = page_for_path(p, compiler)
        if page is not None and page not in pages:
            pages.append(page)
    return RebuildPlan(full=False, pages=pages, removed=removed)


# ─── Scheduler ──────────────────────────────────────────────────────────────

class RebuildScheduler:

    def __init__(self, compiler: SiteCompiler, config: Optional[CompilerConfig] = None,
                 clock: Callable[[], float] = time.monotonic,
                 build: Optional[Callable[[RebuildPlan], bool]] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.compiler = compiler
        self.config = config or compiler.config
        self._clock = clock
        self._build = build or compiler.build_once
        self._sleep = sleep
        self._lock = threading.Lock()
        self._pending: set = set()
        self._last_event: Optional[float] = None
        self.builds = 0

    @property
    def state(self) -> str:
        with self._lock:
            return PENDING if self._pending else IDLE

    def notify(self, path: str) -> bool:
        """Record one change notification. Returns False when it was ignored."""
        if self.config.is_transient(path):
            return False
        normalized = resolve_path(str(path), self.compiler.src_dir)
        with self._lock:
            self._pending.add(normalized)
            self._last_event = self._clock()
        return True

    def remaining(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds left in the debounce window, or None when idle."""
        now = self._clock() if now is None else now
        with self._lock:
            if not self._pending or self._last_event is None:
                return None
            return max(0.0, self.config.debounce_seconds - (now - self._last_event))

    def drain(self, now: Optional[float] = None) -> Optional[set]:
        """Take the pending set if the debounce window has passed."""
        now = self._clock() if now is None else now
        with self._lock:
            if not self._pending or self._last_event is None:
                return None
            if now - self._last_event < self.config.debounce_seconds:
                return None
            changed = self._pending
            self._pending = set()
            self._last_event = None
        return changed

    def poll(self, now: Optional[float] = None) -> Optional[bool]:
        """Run one build if a debounced batch is ready. Returns its result."""
        changed = self.drain(now)
        if changed is None:
            return None
        plan = plan_rebuild(changed, self.compiler, self._sleep)
        if plan.full:
            log(f"{len(changed)} change(s), full rebuild", "Watch")
        else:
            log(f"{len(changed)} change(s), rebuilding {len(plan.pages)} page(s)", "Watch")
        self.builds += 1
        return self._build(plan)

    def run(self, events: "queue.Queue[str]", stop: Optional[threading.Event] = None) -> None:
        """Consume ``events`` until ``stop`` is set."""
        stop = stop or threading.Event()
        while not stop.is_set():
            timeout = self.remaining()
            if timeout is None:
                timeout = self.config.poll_interval_seconds
            try:
                path = events.get(timeout=timeout)
            except queue.Empty:
                pass
            else:
                self.notify(path)
                continue
            self.poll()




# ─── Event source ───────────────────────────────────────────────────────────

class SourceChangeHandler(FileSystemEventHandler):
    """Puts every changed source path on a queue for the scheduler."""

    def __init__(self, events: "queue.Queue[str]"):
        self.events = events

    def on_modified(self, event):
        # directory mtimes change whenever a child does
        if not event.is_directory:
            self.events.put(event.src_path)

    def on_created(self, event):
        self.events.put(event.src_path)

    def on_deleted(self, event):
        self.events.put(event.src_path)

    def on_moved(self, event):
        self.events.put(event.src_path)
        self.events.put(event.dest_path)


def start_watcher(root: str, events: "queue.Queue[str]", interval: float = 0.1) -> Observer:
    observer = Observer(timeout=interval)
    observer.schedule(SourceChangeHandler(events), root, recursive=True)
    observer.start()
    return observer
