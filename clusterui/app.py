"""Textual application entry point for clusterui."""

from __future__ import annotations

import logging
import webbrowser

from textual.app import App, ComposeResult
from textual.containers import Container
from textual.widgets import Footer, Header

from .config import AppConfig, load_config, save_config
from .connection import InvalidConnectionError
from .explorer import ObjectExplorerProvider, SessionTicket
from .filesources import DemoFileSourceFactory, FileSourceFactory
from .history import OpenHistoryTask, UrlOpener
from .lookup import ClusterLookup, ConnectionApi
from .providers import ClusterConnectProvider, HistoryProvider
from .widgets import ExplorerTree, StatusBar

LOG = logging.getLogger(__name__)


def _load_app_config() -> AppConfig:
    """Load configuration with a small wrapper for future overrides."""

    return load_config()


class ClusterExplorerApp(App[None]):
    """Terminal host for the Object Explorer provider."""

    COMMANDS = App.COMMANDS | {ClusterConnectProvider, HistoryProvider}
    CSS = """
    Screen {
        layout: vertical;
    }
    #main-column {
        height: 1fr;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+r", "refresh", "Refresh Node"),
        ("ctrl+s", "spark_history", "Spark History"),
        ("ctrl+y", "yarn_history", "Yarn History"),
    ]

    def __init__(
        self,
        *,
        file_source_factory: FileSourceFactory | None = None,
        connection_api: ConnectionApi | None = None,
        opener: UrlOpener = webbrowser.open,
    ) -> None:
        super().__init__()
        self._config = _load_app_config()
        self._explorer = ObjectExplorerProvider(
            file_source_factory or DemoFileSourceFactory(),
            config=self._config,
            show_error=self._show_error,
        )
        self._history = OpenHistoryTask(ClusterLookup(connection_api), opener=opener, show_error=self._show_error)
        self._tickets: dict[str, SessionTicket] = {}
        self._pending_notifications: list[tuple[str, str]] = []
        self._tree: ExplorerTree | None = None

    def compose(self) -> ComposeResult:
        """Compose the root layout."""

        yield Header(show_clock=True)
        self._tree = ExplorerTree(self._explorer)
        if self._config.layout.tree_width is not None:
            self._tree.styles.width = self._config.layout.tree_width
        yield Container(self._tree, id="main-column")
        yield StatusBar(self._explorer)
        yield Footer()

    async def on_mount(self) -> None:
        self._flush_pending_notifications()
        name = self._config.active_cluster or (self._config.clusters[0].name if self._config.clusters else None)
        if name:
            self.connect_cluster(name, remember=False)

    @property
    def app_config(self) -> AppConfig:
        return self._config

    @property
    def explorer(self) -> ObjectExplorerProvider:
        """Expose the explorer provider for tests and command providers."""

        return self._explorer

    @property
    def tickets(self) -> dict[str, SessionTicket]:
        """Session tickets by cluster name (testing helper)."""

        return dict(self._tickets)

    @property
    def explorer_tree(self) -> ExplorerTree | None:
        return self._tree

    def connect_cluster(self, name: str, *, remember: bool = True) -> SessionTicket | None:
        """Open a session for the named cluster and optionally persist the choice."""

        try:
            profile = self._config.cluster(name)
            ticket = self._explorer.create_session(profile.to_source())
        except (ValueError, InvalidConnectionError) as exc:
            self._show_error(f"{name}: {exc}")
            return None
        self._tickets[name] = ticket
        if remember and self._config.active_cluster != name:
            self._config = self._config.with_active_cluster(name)
            save_config(self._config)
        return ticket

    def action_refresh(self) -> None:
        if self._tree is not None:
            self._tree.refresh_selected()

    async def action_spark_history(self) -> None:
        await self.open_history(spark=True)

    async def action_yarn_history(self) -> None:
        await self.open_history(spark=False)

    async def open_history(self, *, spark: bool) -> str | None:
        """Open the Spark or Yarn history page of the active cluster."""

        source = None
        name = self._config.active_cluster or (next(iter(self._tickets), None))
        if name is not None:
            try:
                source = self._config.cluster(name).to_source()
            except ValueError:
                source = None
        return await self._history.execute(source, spark=spark)

    def _show_error(self, message: str) -> None:
        self._safe_notify(message, severity="error")

    def _safe_notify(self, message: str, *, severity: str = "information") -> None:
        if self.is_running:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display notification", extra={"notification": message})
        else:
            self._pending_notifications.append((message, severity))

    def _flush_pending_notifications(self) -> None:
        if not self._pending_notifications:
            return
        pending = list(self._pending_notifications)
        self._pending_notifications.clear()
        for message, severity in pending:
            try:
                self.notify(message, severity=severity)
            except Exception:
                LOG.exception("Failed to display queued notification", extra={"notification": message})


def main() -> None:
    """Invoke the Textual application."""

    ClusterExplorerApp().run()


if __name__ == "__main__":
    main()
