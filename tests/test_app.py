"""App-level tests for the Textual host."""

from __future__ import annotations

from pathlib import Path

import pytest

from clusterui.app import ClusterExplorerApp
from clusterui.config import AppConfig, ClusterProfileConfig
from clusterui.filesources import DemoFileSourceFactory
from clusterui.providers import ClusterConnectProvider, HistoryProvider

TREE = {"tmp": {}, "user": {}}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "config.toml"
    monkeypatch.setattr("clusterui.config.CONFIG_FILE", path)
    return path


def _config() -> AppConfig:
    return AppConfig(
        clusters=[
            ClusterProfileConfig(name="Local Demo", host="localhost", password="demo"),
            ClusterProfileConfig(name="Prod", host="10.0.0.2", port="8443", password="secret"),
            ClusterProfileConfig(name="No Password", host="10.0.0.9"),
        ],
    )


class _DummyScreen:
    """Minimal stub so providers can reference an app without a running screen stack."""

    def __init__(self, app: ClusterExplorerApp) -> None:
        self.app = app
        self.focused = None


@pytest.mark.anyio
async def test_connect_cluster_opens_session_and_persists_choice(
    config_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr("clusterui.app._load_app_config", _config)
    app = ClusterExplorerApp(file_source_factory=DemoFileSourceFactory(TREE))

    ticket = app.connect_cluster("Prod")

    assert ticket is not None
    result = await ticket.wait()
    assert result.success is True
    assert result.root_node is not None and result.root_node.label == "10.0.0.2"
    assert app.app_config.active_cluster == "Prod"
    assert 'active_cluster = "Prod"' in config_path.read_text()
    assert app.tickets == {"Prod": ticket}


@pytest.mark.anyio
async def test_connect_cluster_reports_bad_profiles(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("clusterui.app._load_app_config", _config)
    app = ClusterExplorerApp(file_source_factory=DemoFileSourceFactory(TREE))

    assert app.connect_cluster("Missing") is None
    assert app.connect_cluster("No Password") is None

    messages = [message for message, severity in app._pending_notifications]  # type: ignore[attr-defined]
    assert any("Cluster 'Missing' not found" in message for message in messages)
    assert any("Invalid ConnectionInfo" in message for message in messages)
    assert app.explorer.sessions == ()
    assert not config_path.exists()


@pytest.mark.anyio
async def test_cluster_connect_provider_lists_clusters(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("clusterui.app._load_app_config", _config)
    app = ClusterExplorerApp(file_source_factory=DemoFileSourceFactory(TREE))

    provider = ClusterConnectProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]
    target = next(hit for hit in hits if "Prod" in (hit.display or ""))
    await target.command()

    assert len(hits) == 3
    assert "Prod" in app.tickets
    assert (await app.tickets["Prod"].wait()).success is True


@pytest.mark.anyio
async def test_history_provider_opens_active_cluster_page(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("clusterui.app._load_app_config", lambda: _config().with_active_cluster("Prod"))
    opened: list[str] = []
    app = ClusterExplorerApp(file_source_factory=DemoFileSourceFactory(TREE), opener=opened.append)

    provider = HistoryProvider(_DummyScreen(app))  # type: ignore[arg-type]
    hits = [hit async for hit in provider.discover()]
    for hit in hits:
        await hit.command()

    assert opened == [
        "https://10.0.0.2:8443/gateway/default/sparkhistory/",
        "https://10.0.0.2:8443/gateway/default/yarn/cluster/apps",
    ]


@pytest.mark.anyio
async def test_tree_renders_session_and_expands_on_demand(config_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("clusterui.app._load_app_config", _config)
    app = ClusterExplorerApp(file_source_factory=DemoFileSourceFactory(TREE))

    async with app.run_test() as pilot:
        ticket = app.tickets["Local Demo"]
        session = await ticket.wait()
        await pilot.pause()
        tree = app.explorer_tree
        assert tree is not None
        root_ui = tree.ui_node(session.session_id, session.session_id)
        assert root_ui is not None
        assert str(root_ui.label) == "localhost"

        root_ui.expand()
        for _ in range(20):
            await pilot.pause()
            if root_ui.children:
                break

        assert [str(child.label) for child in root_ui.children] == ["HDFS"]
        assert not config_path.exists()
