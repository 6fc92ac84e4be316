"""App configuration loading helpers."""

from __future__ import annotations

import json
from pathlib import Path

import tomllib

from pydantic import BaseModel, Field

from .connection import ProfileInput
from .constants import (
    DEFAULT_CLUSTER_USER,
    HADOOP_KNOX_PROVIDER,
    HOST_PROP,
    KNOX_PORT_PROP,
    PASSWORD_PROP,
    USER_PROP,
)

CONFIG_FILE = Path.home() / ".config" / "clusterui" / "config.toml"


class LayoutState(BaseModel):
    """Persisted layout hints for the TUI."""

    tree_width: int | None = None


class ClusterProfileConfig(BaseModel):
    """Cluster gateway profile stored in config.toml."""

    name: str
    host: str
    port: str | None = None
    user: str = DEFAULT_CLUSTER_USER
    password: str | None = None

    def to_source(self) -> ProfileInput:
        """Build the connection shape handed to the explorer."""

        options: dict[str, str] = {HOST_PROP: self.host, USER_PROP: self.user}
        if self.port:
            options[KNOX_PORT_PROP] = self.port
        if self.password is not None:
            options[PASSWORD_PROP] = self.password
        return ProfileInput(id=self.name, options=options, provider_name=HADOOP_KNOX_PROVIDER, name=self.name)


class AppConfig(BaseModel):
    """Shape of the application configuration file."""

    verify_on_connect: bool = False
    clusters: list[ClusterProfileConfig] = Field(default_factory=lambda: list(_default_clusters()))
    active_cluster: str | None = None
    layout: LayoutState = Field(default_factory=LayoutState)

    def cluster(self, name: str) -> ClusterProfileConfig:
        for profile in self.clusters:
            if profile.name == name:
                return profile
        raise ValueError(f"Cluster '{name}' not found.")

    def with_active_cluster(self, name: str) -> AppConfig:
        """Return a copy with the active cluster updated."""

        return self.model_copy(update={"active_cluster": name})

    def with_layout(self, **updates: object) -> AppConfig:
        """Return a copy with layout state changes applied."""

        layout = self.layout.model_copy(update=updates)
        return self.model_copy(update={"layout": layout})


def load_config() -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file()
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()

    clusters_data = data.get("clusters")
    clusters: list[ClusterProfileConfig] | None = None
    if isinstance(clusters_data, list):
        clusters = [
            ClusterProfileConfig(**cluster)
            for cluster in clusters_data  # type: ignore[list-item]
            if isinstance(cluster, dict)
        ]

    return AppConfig(
        verify_on_connect=data.get(
            "verify_on_connect", AppConfig.model_fields["verify_on_connect"].default
        ),
        clusters=clusters if clusters is not None else list(_default_clusters()),
        active_cluster=data.get("active_cluster"),
        layout=data.get("layout", LayoutState()),
    )


def save_config(config: AppConfig) -> None:
    """Persist configuration to disk."""

    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [
        f"verify_on_connect = {str(config.verify_on_connect).lower()}",
    ]
    if config.active_cluster:
        lines.append(f"active_cluster = {_toml_string(config.active_cluster)}")
    if config.layout.tree_width is not None:
        lines.append("")
        lines.append("[layout]")
        lines.append(f"tree_width = {config.layout.tree_width}")
    if config.clusters:
        lines.append("")
        for cluster in config.clusters:
            lines.append("[[clusters]]")
            lines.append(f"name = {_toml_string(cluster.name)}")
            lines.append(f"host = {_toml_string(cluster.host)}")
            if cluster.port:
                lines.append(f"port = {_toml_string(cluster.port)}")
            lines.append(f"user = {_toml_string(cluster.user)}")
            if cluster.password is not None:
                lines.append(f"password = {_toml_string(cluster.password)}")
            lines.append("")
    CONFIG_FILE.write_text("\n".join(lines) + "\n")


def _toml_string(value: str) -> str:
    """Quote ``value`` as a TOML basic string."""

    # JSON string escapes are a subset of TOML basic-string escapes.
    return json.dumps(value)


def _read_config_file() -> dict[str, object]:
    with CONFIG_FILE.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if isinstance(raw, dict):
        verify = raw.get("verify_on_connect")
        if isinstance(verify, bool):
            data["verify_on_connect"] = verify
        active_cluster = raw.get("active_cluster")
        if isinstance(active_cluster, str):
            data["active_cluster"] = active_cluster
        clusters = raw.get("clusters")
        if isinstance(clusters, list):
            parsed_clusters: list[dict[str, object]] = []
            for cluster in clusters:
                if not isinstance(cluster, dict):
                    continue
                parsed: dict[str, object] = {}
                for key in ("name", "host", "user", "password"):
                    value = cluster.get(key)
                    if isinstance(value, str):
                        parsed[key] = value
                port = cluster.get("port")
                if isinstance(port, (int, str)) and not isinstance(port, bool):
                    parsed["port"] = str(port)
                if parsed.get("name") and parsed.get("host"):
                    parsed_clusters.append(parsed)
            if parsed_clusters:
                data["clusters"] = parsed_clusters
        layout = raw.get("layout")
        if isinstance(layout, dict):
            state: dict[str, object] = {}
            tree_width = layout.get("tree_width")
            if isinstance(tree_width, int):
                state["tree_width"] = tree_width
            data["layout"] = LayoutState(**state)
    return data


def _default_clusters() -> tuple[ClusterProfileConfig, ...]:
    """Default cluster shown on first run before config is customized."""

    return (
        ClusterProfileConfig(
            name="Local Demo",
            host="localhost",
            user="root",
            password="demo",
        ),
    )
