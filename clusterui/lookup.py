"""Resolve a SQL master connection into its cluster gateway connection."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Sequence

from .connection import ConnectionInput, ConnectionSource, ProfileInput
from .constants import (
    CLUSTER_ENDPOINTS_PROPERTY,
    DEFAULT_CLUSTER_USER,
    HADOOP_KNOX_PROVIDER,
    HOST_PROP,
    KNOX_ENDPOINT_NAME,
    KNOX_PORT_PROP,
    PASSWORD_PROP,
    USER_PROP,
)

LOG = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Endpoint:
    """Service endpoint advertised by a big-data cluster."""

    service_name: str
    ip_address: str
    port: int


@dataclass(frozen=True, slots=True)
class ServerInfo:
    options: Mapping[str, Any] = field(default_factory=dict)

    @property
    def endpoints(self) -> Sequence[Endpoint]:
        raw = self.options.get(CLUSTER_ENDPOINTS_PROPERTY) or ()
        endpoints: list[Endpoint] = []
        for item in raw:
            if isinstance(item, Endpoint):
                endpoints.append(item)
            elif isinstance(item, Mapping):
                endpoints.append(
                    Endpoint(
                        service_name=str(item.get("serviceName", "")),
                        ip_address=str(item.get("ipAddress", "")),
                        port=int(item.get("port", 0)),
                    )
                )
        return endpoints


class ConnectionApi(Protocol):
    """Host-side credential and server metadata lookups."""

    async def get_server_info(self, connection_id: str) -> ServerInfo | None: ...

    async def get_credentials(self, connection_id: str) -> Mapping[str, str] | None: ...


class ClusterLookup:
    """Turns whatever connection the user selected into a gateway connection."""

    def __init__(self, api: ConnectionApi | None = None) -> None:
        self._api = api

    async def lookup(self, source: ConnectionSource | None) -> ConnectionInput | None:
        if source is None:
            return None
        if source.provider_name == HADOOP_KNOX_PROVIDER:
            if isinstance(source, ProfileInput):
                return ConnectionInput(
                    connection_id=source.id,
                    options=dict(source.options),
                    provider_name=source.provider_name,
                )
            return source
        return await self._from_sql_master(source)

    async def _from_sql_master(self, source: ConnectionSource) -> ConnectionInput | None:
        connection_id = source.id if isinstance(source, ProfileInput) else source.connection_id
        if not connection_id or self._api is None:
            return None
        server_info = await self._api.get_server_info(connection_id)
        if server_info is None or not server_info.options:
            return None
        gateway = next(
            (endpoint for endpoint in server_info.endpoints if endpoint.service_name == KNOX_ENDPOINT_NAME),
            None,
        )
        if gateway is None:
            LOG.debug("No gateway endpoint advertised", extra={"connection_id": connection_id})
            return None
        credentials = await self._api.get_credentials(connection_id)
        if not credentials:
            return None
        return ConnectionInput(
            connection_id=uuid.uuid4().hex,
            options={
                HOST_PROP: gateway.ip_address,
                KNOX_PORT_PROP: str(gateway.port),
                # The gateway accepts the SQL master's password for its root user.
                USER_PROP: DEFAULT_CLUSTER_USER,
                PASSWORD_PROP: credentials.get("password"),
            },
            provider_name=HADOOP_KNOX_PROVIDER,
        )


__all__ = ["ClusterLookup", "ConnectionApi", "Endpoint", "ServerInfo"]
