import os
import threading
import multiprocessing
import time
from contextlib import contextmanager

import config

LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


def enabled(level):
    threshold = LEVELS.get(str(getattr(config, "LOG_LEVEL", "INFO")).upper(), 20)
    return LEVELS.get(level, 20) >= threshold


def log(scope, msg, level="INFO"):
    if not enabled(level):
        return
    pid = os.getpid()
    proc = multiprocessing.current_process().name
    thread = threading.current_thread().name
    text = f"[{level} pid{pid} proc{proc} thr{thread} {scope}] {msg}"
    use_color = getattr(config, "LOG_COLOR", True) and os.getenv("NO_COLOR") is None
    if use_color:
        if level == "ERROR":
            text = f"\x1b[31m{text}\x1b[0m"
        elif proc == "MainProcess" and thread != "MainThread":
            # Worker thread (density slabs, region pool).
            text = f"\x1b[32m{text}\x1b[0m"
        elif proc != "MainProcess":
            text = f"\x1b[33m{text}\x1b[0m"
    print(text)


@contextmanager
def timed(scope, label):
    """Log how long the enclosed block took, in milliseconds."""
    t0 = time.perf_counter()
    try:
        yield
    except BaseException as e:
        if getattr(config, "LOG_TIMINGS", True):
            elapsed_ms = (time.perf_counter() - t0) * 1000.0
            log(scope, f"{label} failed after {elapsed_ms:.1f}ms: {type(e).__name__}", level="WARN")
        raise
    if getattr(config, "LOG_TIMINGS", True):
        elapsed_ms = (time.perf_counter() - t0) * 1000.0
        log(scope, f"{label} {elapsed_ms:.1f}ms")
