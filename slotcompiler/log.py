"""Console logging for the compiler.

Every line is ``[Tag] message``. Error and warning lines go to stderr, the
rest to stdout. When ``LOG_FILE`` is set each line is also appended to it
with a timestamp.
"""

from __future__ import annotations

import sys
from datetime import datetime
from typing import Optional

LOG_FILE: Optional[str] = None

STDERR_TAGS = {"Error", "Warn"}


def set_log_file(path: Optional[str]) -> None:
    global LOG_FILE
    LOG_FILE = path


def log(msg: str, tag: str = "Build") -> None:
    line = f"[{tag}] {msg}"
    stream = sys.stderr if tag in STDERR_TAGS else sys.stdout
    print(line, file=stream, flush=True)
    if LOG_FILE:
        timestamp = datetime.now().strftime("%H:%M:%S")
        with open(LOG_FILE, "a", encoding="utf-8") as f:
            f.write(f"{timestamp} {line}\n")


def format_with_commas(value: int) -> str:
    return f"{value:,}"
