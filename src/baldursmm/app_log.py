"""
app_log.py
Global app log — every message goes to the ``baldursmm`` logger and is
forwarded to a UI log panel when one is registered.

A front end calls set_app_log(log_fn, after_fn) once its log view exists.
Core code calls app_log(msg) so messages appear both in the standard logging
output and in the application log panel.

Thread safety: when app_log is called from a background thread (file staging
workers), panel messages are put on a queue and drained on the main thread
via a periodic after() callback. When called from the main thread, the
message is forwarded immediately.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable

logger = logging.getLogger("baldursmm")

_log_fn: Callable[[str], None] | None = None
_after_fn: Callable | None = None
_main_thread_id: int | None = None
_log_queue: queue.Queue[str] = queue.Queue()


def _drain_log_queue() -> None:
    """Run on main thread: drain queued messages and log them. Reschedule to run again."""
    if _log_fn is None:
        return
    try:
        while True:
            msg = _log_queue.get_nowait()
            try:
                _log_fn(msg)
            except Exception:
                logger.exception("Log sink raised while handling a queued message")
    except queue.Empty:
        pass
    if _after_fn is not None:
        _after_fn(50, _drain_log_queue)


def set_app_log(log_fn: Callable[[str], None], after_fn: Callable) -> None:
    """Register the UI log function and a main-thread runner (e.g. app.after)."""
    global _log_fn, _after_fn, _main_thread_id
    _log_fn = log_fn
    _after_fn = after_fn
    _main_thread_id = threading.current_thread().ident
    after_fn(0, _drain_log_queue)


def app_log(message: str, level: int = logging.INFO) -> None:
    """Write a message to the logger and the application log panel (thread-safe)."""
    logger.log(level, message)
    if _log_fn is None:
        return
    if threading.current_thread().ident == _main_thread_id:
        try:
            _log_fn(message)
        except Exception:
            logger.exception("Log sink raised")
    else:
        _log_queue.put_nowait(message)
