"""Textual pilot tests for the keyoverlay-config TUI.

Tests the form interactions using Textual's async test framework.
Focuses on widget state and the session behind it rather than rendered
text.
"""

import json

import pytest

from textual.widgets import Button, Label

from keyoverlay_config.events import ConnectionsUpdate, EventBridge
from keyoverlay_config.session import EditorSession
from keyoverlay_config.tui.app import ConfiguratorApp
from keyoverlay_config.tui.widgets import CommitInput, KeyRow


@pytest.fixture()
def config_path(tmp_path):
    return str(tmp_path / "keyoverlay.json")


class RecordingOpener:
    """Stand-in for webbrowser.open that records URLs."""

    def __init__(self, result: bool = True):
        self.urls: list[str] = []
        self.result = result

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return self.result


def make_app(config_path, bridge=None, **kwargs) -> ConfiguratorApp:
    session = EditorSession.open(config_path, bridge)
    return ConfiguratorApp(session, **kwargs)


@pytest.mark.asyncio
async def test_app_starts(config_path):
    """App mounts without crashing and shows the key rows."""
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)):
        assert len(app.query(KeyRow)) == 2
        assert app.query_one("#web-port", CommitInput).value == "7685"
        assert app.query_one("#socket-port", CommitInput).value == "7686"
        assert app.query_one("#reset", CommitInput).value == "End"


@pytest.mark.asyncio
async def test_save_disabled_when_clean(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        await pilot.pause()
        assert app.query_one("#save", Button).disabled is True
        assert not app.query_one("#restart-warning", Label).has_class("visible")


@pytest.mark.asyncio
async def test_advisory_consumed_on_mount(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        await pilot.pause()
        assert app.session.store.take_advisory() is None


@pytest.mark.asyncio
async def test_commit_port_enables_save(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        port_input = app.query_one("#web-port", CommitInput)
        port_input.post_message(CommitInput.Committed(port_input, "9000"))
        await pilot.pause()

        assert app.session.draft.web_port == 9000
        assert app.query_one("#save", Button).disabled is False


@pytest.mark.asyncio
async def test_rejected_port_restores_input(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        port_input = app.query_one("#socket-port", CommitInput)
        port_input.value = "70000"
        port_input.post_message(CommitInput.Committed(port_input, "70000"))
        await pilot.pause()

        assert app.session.draft.socket_port == 7686
        assert port_input.value == "7686"
        assert app.query_one("#save", Button).disabled is True


@pytest.mark.asyncio
async def test_commit_reset(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        reset_input = app.query_one("#reset", CommitInput)
        reset_input.post_message(CommitInput.Committed(reset_input, "Home"))
        await pilot.pause()
        assert app.session.draft.reset == "Home"


@pytest.mark.asyncio
async def test_save_writes_file_and_shows_restart_warning(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        app.session.set_key(0, "A")
        app.action_save()
        await pilot.pause()

        with open(config_path) as f:
            assert json.load(f)["keys"] == ["A", "X"]
        assert app.query_one("#save", Button).disabled is True
        assert app.query_one("#restart-warning", Label).has_class("visible")


@pytest.mark.asyncio
async def test_key_row_change_updates_draft(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        row = app.query(KeyRow).last()
        row.post_message(KeyRow.Changed(row.key_index, "Q"))
        await pilot.pause()
        assert app.session.draft.keys == ["Z", "Q"]


@pytest.mark.asyncio
async def test_add_and_remove_key_rebuild_rows(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        add = app.query_one("#add-key", Button)
        add.post_message(Button.Pressed(add))
        await pilot.pause()
        assert app.session.draft.keys == ["Z", "X", ""]
        assert len(app.query(KeyRow)) == 3

        first = app.query(KeyRow).first()
        first.post_message(KeyRow.RemoveRequested(first.key_index))
        await pilot.pause()
        assert app.session.draft.keys == ["X", ""]
        assert [row.key_index for row in app.query(KeyRow)] == [0, 1]


@pytest.mark.asyncio
async def test_open_browser_uses_saved_port(config_path):
    opener = RecordingOpener()
    app = make_app(config_path, open_url=opener)
    async with app.run_test(size=(120, 50)) as pilot:
        app.session.commit_port("web_port", "9000")
        app.action_open_browser()
        await pilot.pause()
        assert opener.urls == ["http://127.0.0.1:7685"]


@pytest.mark.asyncio
async def test_client_status_updates_from_bridge(config_path):
    bridge = EventBridge()
    app = make_app(config_path, bridge=bridge)
    async with app.run_test(size=(120, 50)) as pilot:
        bridge.send(ConnectionsUpdate(4))
        await pilot.pause(0.3)
        assert app.session.status.client_count == 4
        assert not app.query_one("#client-status", Label).has_class("disconnected")


@pytest.mark.asyncio
async def test_closed_bridge_shows_disconnected(config_path):
    bridge = EventBridge()
    bridge.close()
    app = make_app(config_path, bridge=bridge)
    async with app.run_test(size=(120, 50)) as pilot:
        await pilot.pause()
        assert app.session.status.connected is False
        assert app.query_one("#client-status", Label).has_class("disconnected")


@pytest.mark.asyncio
async def test_cycle_scheme_without_settings(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        before = app._color_scheme
        app.action_cycle_scheme()
        await pilot.pause()
        assert app._color_scheme != before


# ---------------------------------------------------------------------------
# Commit on enter / focus loss, driven through real key presses and clicks
# ---------------------------------------------------------------------------

async def _retype(pilot, widget, text: str) -> None:
    """Focus *widget*, clear it and type *text* without committing."""
    widget.focus()
    await pilot.pause()
    await pilot.press("end", *["backspace"] * len(widget.value), *text)
    await pilot.pause()


@pytest.mark.asyncio
async def test_typing_port_does_not_commit_until_enter(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        port_input = app.query_one("#web-port", CommitInput)
        await _retype(pilot, port_input, "9000")

        assert port_input.value == "9000"
        assert app.session.revision == 0
        assert app.session.draft.web_port == 7685

        await pilot.press("enter")
        await pilot.pause()
        assert app.session.draft.web_port == 9000
        assert '"web_port": 9000,' in app.session.canonical
        assert app.session.revision == 1
        assert app.query_one("#save", Button).disabled is False


@pytest.mark.asyncio
async def test_port_commits_on_focus_loss(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        port_input = app.query_one("#socket-port", CommitInput)
        await _retype(pilot, port_input, "8000")
        assert app.session.revision == 0

        app.query_one("#reset", CommitInput).focus()
        await pilot.pause()
        assert app.session.draft.socket_port == 8000
        assert '"socket_port": 8000,' in app.session.canonical
        assert app.session.revision == 1


@pytest.mark.asyncio
async def test_invalid_port_typed_and_submitted_snaps_back(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        port_input = app.query_one("#web-port", CommitInput)
        await _retype(pilot, port_input, "abc")
        await pilot.press("enter")
        await pilot.pause()
        assert port_input.value == "7685"
        assert app.session.draft.web_port == 7685
        assert app.session.revision == 0


@pytest.mark.asyncio
async def test_key_row_commits_on_click_of_add(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        key_input = app.query(KeyRow).last().query_one(CommitInput)
        key_input.focus()
        await pilot.pause()
        await pilot.press("end", "Q")
        await pilot.pause()
        assert app.session.revision == 0
        assert app.session.draft.keys == ["Z", "X"]

        await pilot.click("#add-key")
        await pilot.pause()
        assert app.session.draft.keys == ["Z", "XQ", ""]
        assert [row.key_text for row in app.query(KeyRow)] == ["Z", "XQ", ""]
        assert '"keys": [ "Z", "XQ", "" ],' in app.session.canonical


@pytest.mark.asyncio
async def test_key_row_enter_then_remove_click(config_path):
    app = make_app(config_path)
    async with app.run_test(size=(120, 50)) as pilot:
        key_input = app.query(KeyRow).last().query_one(CommitInput)
        key_input.focus()
        await pilot.pause()
        await pilot.press("end", "Q", "enter")
        await pilot.pause()
        assert app.session.draft.keys == ["Z", "XQ"]

        await pilot.click("#key-list .remove-key")
        await pilot.pause()
        assert app.session.draft.keys == ["XQ"]
        assert [row.key_text for row in app.query(KeyRow)] == ["XQ"]
