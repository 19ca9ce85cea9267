"""Clipboard writes performed on a dedicated UI-affine thread.

Some platforms only allow clipboard ownership from a thread that satisfies
the UI apartment rules. The write is handed to a short-lived thread and the
caller blocks on ``join`` so a following paste keystroke never races an
uncommitted clipboard write.
"""

from __future__ import annotations

import threading
from typing import Callable, List

import pyperclip

CLIPBOARD_THREAD_NAME = "clipboard-ui"


def run_in_ui_context(func: Callable[[], None]) -> None:
    """Run ``func`` on a dedicated thread and wait for it to finish.

    Exceptions raised by ``func`` are re-raised in the calling thread.
    """
    errors: List[BaseException] = []

    def _target() -> None:
        try:
            func()
        except BaseException as exc:
            errors.append(exc)

    worker = threading.Thread(target=_target, name=CLIPBOARD_THREAD_NAME, daemon=True)
    worker.start()
    worker.join()
    if errors:
        raise errors[0]


def set_text(text: str) -> None:
    """Place ``text`` on the system clipboard, returning once it is committed."""
    run_in_ui_context(lambda: pyperclip.copy(text))
