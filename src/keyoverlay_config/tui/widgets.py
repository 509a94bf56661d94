"""Reusable widgets for the keyoverlay-config TUI.

Contains CommitInput (an Input that reports its value on blur or enter),
KeyRow (one editable key binding with a remove button), and the
_safe_action decorator.
"""

from __future__ import annotations

import functools
import inspect

from textual import events
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.message import Message
from textual.widgets import Button, Input

from ..logging import get_logger, log_context

_log = get_logger("keyoverlay-config.tui.widgets")


# ─── Safe action decorator ────────────────────────────────────────────────

def _safe_action(fn):
    """Decorator that catches exceptions in TUI action methods.

    Logs the error and shows it as a notification instead of crashing
    the app. Works for both plain and async handlers.
    """

    def report(self, exc: Exception) -> None:
        err = f"{type(exc).__name__}: {str(exc)[:100]}"
        _log.error(
            "Error in %s: %s", fn.__name__, err,
            exc_info=True,
            extra={"context": log_context(action=fn.__name__)},
        )
        self.notify(f"Error in {fn.__name__}: {err}", severity="error")

    if inspect.iscoroutinefunction(fn):
        @functools.wraps(fn)
        async def async_wrapper(self, *args, **kwargs):
            try:
                return await fn(self, *args, **kwargs)
            except Exception as exc:
                report(self, exc)
        return async_wrapper

    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except Exception as exc:
            report(self, exc)
    return wrapper


# ─── Inputs ───────────────────────────────────────────────────────────────

class CommitInput(Input):
    """Input that posts Committed when it loses focus or enter is pressed.

    Edits are only applied on commit, not per keystroke.
    """

    class Committed(Message):
        def __init__(self, input: "CommitInput", value: str) -> None:
            super().__init__()
            self.input = input
            self.value = value

        @property
        def control(self) -> "CommitInput":
            return self.input

    def on_blur(self, event: events.Blur) -> None:
        self.post_message(self.Committed(self, self.value))

    def on_input_submitted(self, event: Input.Submitted) -> None:
        event.stop()
        self.post_message(self.Committed(self, self.value))


class KeyRow(Horizontal):
    """One key binding: an input plus a "-" button."""

    class Changed(Message):
        def __init__(self, index: int, value: str) -> None:
            super().__init__()
            self.index = index
            self.value = value

    class RemoveRequested(Message):
        def __init__(self, index: int) -> None:
            super().__init__()
            self.index = index

    def __init__(self, index: int, key: str) -> None:
        super().__init__(classes="field-row key-row")
        self.key_index = index
        self.key_text = key

    def compose(self) -> ComposeResult:
        yield CommitInput(value=self.key_text, placeholder="...", classes="key-input")
        yield Button("-", classes="remove-key")

    def on_commit_input_committed(self, event: CommitInput.Committed) -> None:
        event.stop()
        if event.value != self.key_text:
            self.key_text = event.value
            self.post_message(self.Changed(self.key_index, event.value))

    def on_button_pressed(self, event: Button.Pressed) -> None:
        event.stop()
        self.post_message(self.RemoveRequested(self.key_index))
