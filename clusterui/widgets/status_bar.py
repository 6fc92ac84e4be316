"""Status bar widget that mirrors Object Explorer activity."""

from __future__ import annotations

from typing import Callable

from textual.widgets import Static

from clusterui.explorer import ExpandResult, ObjectExplorerProvider, SessionResult, SessionState


class StatusBar(Static):
    """Compact status strip rendered above Textual's footer."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        padding: 0 1;
        background: $surface-darken-3;
        color: $text;
    }
    """

    def __init__(self, provider: ObjectExplorerProvider) -> None:
        super().__init__("", id="status-bar", markup=False)
        self._provider = provider
        self._unsubscribes: list[Callable[[], None]] = []
        self._last_event = "Idle"

    async def on_mount(self) -> None:
        self._unsubscribes = [
            self._provider.subscribe_session_created(self._handle_session_created),
            self._provider.subscribe_expand_completed(self._handle_expand_completed),
        ]
        self._render_status()

    def on_unmount(self) -> None:
        for unsubscribe in self._unsubscribes:
            unsubscribe()
        self._unsubscribes = []

    def _handle_session_created(self, result: SessionResult) -> None:
        if result.success:
            self._last_event = f"Connected {result.session_id}"
        else:
            self._last_event = f"Failed {result.session_id}: {(result.error_message or 'unknown error').splitlines()[0][:80]}"
        self._render_status()

    def _handle_expand_completed(self, result: ExpandResult) -> None:
        if result.error_message:
            self._last_event = f"Error: {result.error_message.splitlines()[0][:80]}"
        else:
            self._last_event = f"Expanded {result.node_path} ({len(result.nodes)} items)"
        self._render_status()

    def _render_status(self) -> None:
        active = sum(1 for session in self._provider.sessions if session.state is SessionState.ACTIVE)
        self.update(f"Sessions: {active} | {self._last_event}")


__all__ = ["StatusBar"]
