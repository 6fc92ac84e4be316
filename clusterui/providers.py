"""Command palette providers for core app features."""

from __future__ import annotations

from typing import Any

from textual.command import DiscoveryHit, Hit, Hits, Provider
from textual.types import IgnoreReturnCallbackType


class ClusterConnectProvider(Provider):
    """Expose configured clusters to the command palette."""

    async def search(self, query: str) -> Hits:
        app = self._explorer_app
        if app is None:
            return
        matcher = self.matcher(query)
        for cluster in app.app_config.clusters:
            match = matcher.match(cluster.name)
            if match > 0:
                yield Hit(
                    score=match,
                    match_display=f"Connect to cluster: {matcher.highlight(cluster.name)}",
                    command=self._build_callback(cluster.name),
                    help="Open an Object Explorer session for the cluster.",
                )

    async def discover(self) -> Hits:
        app = self._explorer_app
        if app is None:
            return
        for cluster in app.app_config.clusters:
            yield DiscoveryHit(
                display=f"Connect to cluster: {cluster.name}",
                command=self._build_callback(cluster.name),
                help="Open an Object Explorer session for the cluster.",
            )

    @property
    def _explorer_app(self) -> Any | None:
        if getattr(self.app, "explorer", None) is None:
            return None
        return self.app

    def _build_callback(self, name: str) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            connect = getattr(self.app, "connect_cluster", None)
            if connect is None:
                return
            connect(name)

        return _run


class HistoryProvider(Provider):
    """Open Spark/Yarn history pages for the active cluster."""

    _ENTRIES = (
        ("Open Spark history", True),
        ("Open Yarn history", False),
    )

    async def search(self, query: str) -> Hits:
        if getattr(self.app, "open_history", None) is None:
            return
        matcher = self.matcher(query)
        for label, spark in self._ENTRIES:
            score = matcher.match(label)
            if score > 0:
                yield Hit(
                    score=score,
                    match_display=matcher.highlight(label),
                    command=self._build_callback(spark),
                    help="Open the history page through the cluster gateway.",
                )

    async def discover(self) -> Hits:
        if getattr(self.app, "open_history", None) is None:
            return
        for label, spark in self._ENTRIES:
            yield DiscoveryHit(
                display=label,
                command=self._build_callback(spark),
                help="Open the history page through the cluster gateway.",
            )

    def _build_callback(self, spark: bool) -> IgnoreReturnCallbackType:
        async def _run() -> None:
            opener = getattr(self.app, "open_history", None)
            if opener is None:
                return
            await opener(spark=spark)

        return _run


__all__ = ["ClusterConnectProvider", "HistoryProvider"]
