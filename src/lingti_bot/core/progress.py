"""Progress callbacks carried through the current async context.

Platform adapters install a callback with :func:`progress_scope`; the agent
calls :func:`report_progress` to surface intermediate status (e.g. which tool
is running) without knowing who is listening.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable, Iterator

from lingti_bot.log import get_logger

logger = get_logger(__name__)

ProgressFunc = Callable[[str], None]

_progress: ContextVar[ProgressFunc | None] = ContextVar("lingti_progress", default=None)


@contextmanager
def progress_scope(fn: ProgressFunc | None) -> Iterator[None]:
    token = _progress.set(fn)
    try:
        yield
    finally:
        _progress.reset(token)


def current_progress() -> ProgressFunc | None:
    return _progress.get()


def report_progress(text: str) -> None:
    """Invoke the active progress callback, if any. Callback errors are logged and dropped."""
    fn = _progress.get()
    if fn is None:
        return
    try:
        fn(text)
    except Exception as e:
        logger.warning("progress_callback_error", error=str(e))
