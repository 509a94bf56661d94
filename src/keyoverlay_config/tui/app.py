"""Main TUI application for keyoverlay-config.

ConfiguratorApp is a thin renderer over an EditorSession: it forwards
committed input to the session and redraws from the session's state on
every tick. It holds no configuration state of its own.
"""

from __future__ import annotations

import webbrowser
from typing import TYPE_CHECKING, Callable, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.timer import Timer
from textual.widgets import Button, Collapsible, Footer, Label, Static

from ..errors import IoFailure
from ..logging import get_logger, log_context
from ..session import EditorSession
from .themes import DEFAULT_SCHEME, build_css, next_scheme
from .widgets import CommitInput, KeyRow, _safe_action

if TYPE_CHECKING:
    from ..settings import EditorSettings

_log = get_logger("keyoverlay-config.tui")

DEFAULT_TICK_INTERVAL = 0.1

RESTART_WARNING = "Some settings have been changed that require a restart"

_PORT_INPUTS = {"web-port": "web_port", "socket-port": "socket_port"}

_UNSET = object()


class ConfiguratorApp(App):
    """Textual form for editing the keyoverlay daemon config."""

    CSS = build_css(DEFAULT_SCHEME)

    BINDINGS = [
        Binding("ctrl+s", "save", "Save", show=True),
        Binding("ctrl+o", "open_browser", "Open in browser", show=True),
        Binding("ctrl+t", "cycle_scheme", "Theme", show=True),
        Binding("ctrl+q", "quit_app", "Quit", show=True),
    ]

    def __init__(
        self,
        session: EditorSession,
        settings: Optional["EditorSettings"] = None,
        open_url: Callable[[str], bool] = webbrowser.open,
        **kwargs,
    ) -> None:
        scheme_name = settings.color_scheme if settings else DEFAULT_SCHEME
        self.__class__.CSS = build_css(scheme_name)
        super().__init__(**kwargs)
        self.session = session
        self.settings = settings
        self._open_url = open_url
        self._color_scheme = scheme_name
        self._shown_revision = -1
        self._shown_persisted: object = _UNSET
        self._tick_timer: Optional[Timer] = None

    # ─── Layout ─────────────────────────────────────────────────────

    def _key_rows(self) -> list[KeyRow]:
        return [KeyRow(i, key) for i, key in enumerate(self.session.draft.keys)]

    def compose(self) -> ComposeResult:
        draft = self.session.draft
        with Horizontal(id="columns"):
            with Vertical(id="left"):
                yield Label("keyoverlay-rs configurator", id="title")
                with VerticalScroll(id="left-scroll"):
                    with Collapsible(title="Ports", collapsed=False, id="ports"):
                        with Horizontal(classes="field-row"):
                            yield Label("Web Port:")
                            yield CommitInput(
                                value=draft.web_port_str, placeholder="...",
                                id="web-port", classes="port-input",
                            )
                        with Horizontal(classes="field-row"):
                            yield Label("Socket Port:")
                            yield CommitInput(
                                value=draft.socket_port_str, placeholder="...",
                                id="socket-port", classes="port-input",
                            )
                    with Collapsible(title="Keybinds", collapsed=False, id="keybinds"):
                        yield Vertical(*self._key_rows(), id="key-list")
                        yield Button("+", id="add-key")
                        with Horizontal(classes="field-row"):
                            yield Label("Reset:")
                            yield CommitInput(
                                value=draft.reset, placeholder="...",
                                id="reset", classes="key-input",
                            )
                yield Button("Save Configuration", id="save", variant="primary", disabled=True)
                yield Label(self.session.status.describe(), id="client-status")
            with Vertical(id="right"):
                with VerticalScroll(id="right-scroll"):
                    with Collapsible(title="Current Configuration", collapsed=False):
                        yield Static("", id="canonical-json", classes="json-view", markup=False)
                    with Collapsible(title=self.session.store.name, collapsed=False):
                        yield Static("", id="persisted-json", classes="json-view", markup=False)
                yield Label(RESTART_WARNING, id="restart-warning")
                with Horizontal(id="bottom-buttons"):
                    yield Button("Open in Browser", id="open-browser")
                    yield Button("Quit", id="quit", variant="error")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "keyoverlay-rs"
        self.sub_title = self.session.store.name

        advisory = self.session.store.take_advisory()
        if advisory:
            self.notify(advisory, title="No configuration found", severity="warning", timeout=10)

        interval = self.settings.tick_interval if self.settings else DEFAULT_TICK_INTERVAL
        self._tick_timer = self.set_interval(interval, self._tick)
        self._tick()

    # ─── Tick ───────────────────────────────────────────────────────

    def _tick(self) -> None:
        """Drain daemon events, then redraw status and config views."""
        self.session.tick()
        status = self.query_one("#client-status", Label)
        status.update(self.session.status.describe())
        status.set_class(not self.session.status.connected, "disconnected")
        self._refresh_config_views()

    def _refresh_config_views(self) -> None:
        if self._shown_revision != self.session.revision:
            self.query_one("#canonical-json", Static).update(self.session.canonical)
            self._shown_revision = self.session.revision

        persisted = self.session.persisted_text()
        if persisted != self._shown_persisted:
            self.query_one("#persisted-json", Static).update(
                persisted if persisted is not None else "(file could not be read)"
            )
            self._shown_persisted = persisted

        self.query_one("#save", Button).disabled = not self.session.dirty
        self.query_one("#restart-warning", Label).set_class(
            self.session.restart_required, "visible",
        )

    async def _rebuild_key_rows(self) -> None:
        key_list = self.query_one("#key-list", Vertical)
        await key_list.remove_children()
        await key_list.mount_all(self._key_rows())

    # ─── Edits ──────────────────────────────────────────────────────

    @_safe_action
    def on_commit_input_committed(self, event: CommitInput.Committed) -> None:
        input_id = event.input.id
        if input_id in _PORT_INPUTS:
            field_name = _PORT_INPUTS[input_id]
            accepted = self.session.commit_port(field_name, event.value)
            event.input.value = getattr(self.session.draft, f"{field_name}_str")
            if not accepted:
                self.notify(
                    f"{event.value!r} is not a valid port, keeping {event.input.value}",
                    severity="warning",
                )
        elif input_id == "reset":
            if event.value != self.session.draft.reset:
                self.session.set_reset(event.value)
        self._refresh_config_views()

    @_safe_action
    def on_key_row_changed(self, event: KeyRow.Changed) -> None:
        self.session.set_key(event.index, event.value)
        self._refresh_config_views()

    @_safe_action
    async def on_key_row_remove_requested(self, event: KeyRow.RemoveRequested) -> None:
        self.session.remove_key(event.index)
        await self._rebuild_key_rows()
        self._refresh_config_views()

    @_safe_action
    async def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id
        if button_id == "add-key":
            self.session.add_key()
            await self._rebuild_key_rows()
            self._refresh_config_views()
        elif button_id == "save":
            self.action_save()
        elif button_id == "open-browser":
            self.action_open_browser()
        elif button_id == "quit":
            self.action_quit_app()

    # ─── Actions ────────────────────────────────────────────────────

    @_safe_action
    def action_save(self) -> None:
        """Write the draft to disk. Only acts when the draft differs from the file."""
        if not self.session.dirty:
            return
        try:
            self.session.save()
        except IoFailure as e:
            _log.error(
                "Save failed: %s", e.message,
                extra={"context": log_context(path=e.path)},
            )
            self.notify(e.message, title="Save failed", severity="error", timeout=10)
        else:
            self.notify(f"Saved {self.session.store.name}")
        self._refresh_config_views()

    @_safe_action
    def action_open_browser(self) -> None:
        """Open the daemon's web overlay using the saved web port."""
        host = self.settings.browser_host if self.settings else "127.0.0.1"
        url = self.session.web_url(host)
        if not self._open_url(url):
            self.notify(f"Could not open {url}", severity="warning")

    @_safe_action
    def action_cycle_scheme(self) -> None:
        """Switch to the next color scheme. Takes effect on the next start."""
        scheme = next_scheme(self._color_scheme)
        self._color_scheme = scheme
        if self.settings:
            self.settings.set_color_scheme(scheme)
            self.settings.save()
        self.notify(f"Color scheme: {scheme} (applies on next start)")

    def action_quit_app(self) -> None:
        self.exit()
