"""Cluster connection descriptors and input normalization."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from .constants import (
    DEFAULT_KNOX_PORT,
    HADOOP_KNOX_PROVIDER,
    HDFS_PROTOCOL,
    HOST_PROP,
    KNOX_PORT_PROP,
    OBJECT_EXPLORER_PREFIX,
    PASSWORD_PROP,
    USER_PROP,
    WEBHDFS_PATH,
)
from .filesources import HdfsAuth, HdfsOptions


class InvalidConnectionError(ValueError):
    """Raised when a connection is missing host, user or password."""


@dataclass(frozen=True, slots=True)
class ProfileInput:
    """Saved connection profile handed over by the host (keyed by ``id``)."""

    id: str
    options: Mapping[str, Any] = field(default_factory=dict)
    provider_name: str = HADOOP_KNOX_PROVIDER
    name: str | None = None


@dataclass(frozen=True, slots=True)
class ConnectionInput:
    """Live connection handed over by the host (keyed by ``connection_id``)."""

    connection_id: str
    options: Mapping[str, Any] = field(default_factory=dict)
    provider_name: str = HADOOP_KNOX_PROVIDER


ConnectionSource = ProfileInput | ConnectionInput


def parse_connection_source(payload: Mapping[str, Any]) -> ConnectionSource:
    """Decode a raw host payload into one of the two connection shapes.

    Profiles carry an ``id``; connections carry a ``connectionId``. Payloads
    that carry neither are rejected.
    """

    options = payload.get("options") or {}
    provider = payload.get("providerName") or HADOOP_KNOX_PROVIDER
    if "id" in payload:
        return ProfileInput(
            id=str(payload["id"]),
            options=dict(options),
            provider_name=provider,
            name=payload.get("connectionName"),
        )
    if "connectionId" in payload:
        return ConnectionInput(
            connection_id=str(payload["connectionId"]),
            options=dict(options),
            provider_name=provider,
        )
    raise InvalidConnectionError("Invalid ConnectionInfo is provided.")


@dataclass(frozen=True, slots=True)
class ConnectionDescriptor:
    """Canonical cluster connection record."""

    host: str
    port: str
    user: str
    password: str = field(repr=False)
    source: ConnectionSource = field(repr=False, compare=False)

    @classmethod
    def from_source(cls, source: ConnectionSource) -> ConnectionDescriptor:
        options = source.options or {}
        host = _option(options, HOST_PROP)
        user = _option(options, USER_PROP)
        password = _option(options, PASSWORD_PROP)
        if host is None or user is None or password is None:
            raise InvalidConnectionError("Invalid ConnectionInfo is provided.")
        port = _option(options, KNOX_PORT_PROP) or DEFAULT_KNOX_PORT
        return cls(host=host, port=port, user=user, password=password, source=source)

    @property
    def connection_id(self) -> str:
        if isinstance(self.source, ProfileInput):
            return self.source.id
        return self.source.connection_id

    @property
    def uri(self) -> str:
        """Session key shared by every descriptor with the same identity."""

        return f"{OBJECT_EXPLORER_PREFIX}{self.user}@{self.host}:{self.port}"

    @property
    def server_name(self) -> str:
        return f"{self.host},{self.port}"

    def identity(self) -> tuple[str | None, str | None, str | None]:
        return self.host, self.port, self.user

    def matches(self, other: ConnectionDescriptor | ConnectionSource | None) -> bool:
        """Compare host, port and user; the password is ignored."""

        if other is None:
            return False
        if isinstance(other, ConnectionDescriptor):
            return self.identity() == other.identity()
        return self.identity() == _source_identity(other)

    def hdfs_options(self) -> HdfsOptions:
        return HdfsOptions(
            protocol=HDFS_PROTOCOL,
            host=self.host,
            port=self.port,
            user=self.user,
            path=WEBHDFS_PATH,
            auth=HdfsAuth(user=self.user, password=self.password),
        )


def normalize(source: ConnectionSource) -> ConnectionDescriptor:
    """Normalize a profile or connection into a :class:`ConnectionDescriptor`."""

    return ConnectionDescriptor.from_source(source)


def _option(options: Mapping[str, Any], key: str) -> str | None:
    value = options.get(key)
    if value is None:
        return None
    text = str(value)
    return text or None


def _source_identity(source: ConnectionSource) -> tuple[str | None, str | None, str | None]:
    options = source.options or {}
    port = _option(options, KNOX_PORT_PROP) or DEFAULT_KNOX_PORT
    return _option(options, HOST_PROP), port, _option(options, USER_PROP)


__all__ = [
    "ConnectionDescriptor",
    "ConnectionInput",
    "ConnectionSource",
    "InvalidConnectionError",
    "ProfileInput",
    "normalize",
    "parse_connection_source",
]
