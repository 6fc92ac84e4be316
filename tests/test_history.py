"""Tests for cluster lookup and the Spark/Yarn history task."""

from __future__ import annotations

from typing import Mapping

import pytest

from clusterui.connection import ConnectionInput, ProfileInput
from clusterui.constants import HADOOP_KNOX_PROVIDER, SQL_PROVIDER
from clusterui.history import OpenHistoryTask, spark_history_url, yarn_history_url
from clusterui.lookup import ClusterLookup, Endpoint, ServerInfo


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class _FakeApi:
    def __init__(
        self,
        server_info: ServerInfo | None = None,
        credentials: Mapping[str, str] | None = None,
    ) -> None:
        self.server_info = server_info
        self.credentials = credentials
        self.calls: list[tuple[str, str]] = []

    async def get_server_info(self, connection_id: str) -> ServerInfo | None:
        self.calls.append(("server_info", connection_id))
        return self.server_info

    async def get_credentials(self, connection_id: str) -> Mapping[str, str] | None:
        self.calls.append(("credentials", connection_id))
        return self.credentials


def _sql_master() -> ProfileInput:
    return ProfileInput(id="sql-1", options={"server": "master"}, provider_name=SQL_PROVIDER)


def _server_info(*endpoints: Endpoint) -> ServerInfo:
    return ServerInfo(options={"clusterEndpoints": list(endpoints)})


def test_history_urls() -> None:
    assert spark_history_url("h", "30443") == "https://h:30443/gateway/default/sparkhistory/"
    assert yarn_history_url("h", "30443") == "https://h:30443/gateway/default/yarn/cluster/apps"


@pytest.mark.anyio
async def test_lookup_passes_cluster_profiles_through() -> None:
    lookup = ClusterLookup()
    profile = ProfileInput(id="p", options={"host": "h"}, provider_name=HADOOP_KNOX_PROVIDER)
    connection = ConnectionInput(connection_id="c", options={"host": "h"})

    resolved = await lookup.lookup(profile)

    assert resolved == ConnectionInput(connection_id="p", options={"host": "h"})
    assert await lookup.lookup(connection) is connection
    assert await lookup.lookup(None) is None


@pytest.mark.anyio
async def test_lookup_resolves_gateway_endpoint_from_sql_master() -> None:
    api = _FakeApi(
        _server_info(
            Endpoint(service_name="sql-server-master", ip_address="10.0.0.1", port=31433),
            Endpoint(service_name="gateway", ip_address="10.0.0.2", port=30443),
        ),
        {"password": "secret"},
    )

    resolved = await ClusterLookup(api).lookup(_sql_master())

    assert resolved is not None
    assert resolved.provider_name == HADOOP_KNOX_PROVIDER
    assert resolved.options == {
        "host": "10.0.0.2",
        "knoxport": "30443",
        "user": "root",
        "password": "secret",
    }
    assert api.calls == [("server_info", "sql-1"), ("credentials", "sql-1")]


@pytest.mark.anyio
async def test_lookup_reads_endpoints_from_raw_mappings() -> None:
    api = _FakeApi(
        ServerInfo(options={"clusterEndpoints": [{"serviceName": "gateway", "ipAddress": "1.2.3.4", "port": 8443}]}),
        {"password": "pw"},
    )

    resolved = await ClusterLookup(api).lookup(_sql_master())

    assert resolved is not None and resolved.options["host"] == "1.2.3.4"


@pytest.mark.anyio
@pytest.mark.parametrize(
    ("server_info", "credentials"),
    [
        (None, {"password": "pw"}),
        (_server_info(), {"password": "pw"}),
        (_server_info(Endpoint("yarn-ui", "10.0.0.3", 8088)), {"password": "pw"}),
        (_server_info(Endpoint("gateway", "10.0.0.2", 30443)), None),
    ],
)
async def test_lookup_returns_none_when_cluster_is_incomplete(
    server_info: ServerInfo | None,
    credentials: Mapping[str, str] | None,
) -> None:
    resolved = await ClusterLookup(_FakeApi(server_info, credentials)).lookup(_sql_master())

    assert resolved is None


@pytest.mark.anyio
async def test_history_task_opens_spark_and_yarn_pages() -> None:
    opened: list[str] = []
    errors: list[str] = []
    task = OpenHistoryTask(ClusterLookup(), opener=opened.append, show_error=errors.append)
    source = ProfileInput(id="p", options={"host": "h", "user": "root", "password": "p"})

    spark = await task.execute(source, spark=True)
    yarn = await task.execute(source, spark=False)

    assert spark == "https://h:30443/gateway/default/sparkhistory/"
    assert yarn == "https://h:30443/gateway/default/yarn/cluster/apps"
    assert opened == [spark, yarn]
    assert errors == []


@pytest.mark.anyio
async def test_history_task_asks_user_to_connect_first() -> None:
    opened: list[str] = []
    errors: list[str] = []
    task = OpenHistoryTask(ClusterLookup(), opener=opened.append, show_error=errors.append)

    assert await task.execute(None, spark=False) is None
    assert errors == ["Please connect to the Spark cluster before View Yarn History."]
    assert opened == []


@pytest.mark.anyio
async def test_history_task_reports_invalid_connections() -> None:
    errors: list[str] = []
    task = OpenHistoryTask(ClusterLookup(), opener=lambda url: None, show_error=errors.append)

    result = await task.execute(ProfileInput(id="p", options={"host": "h"}), spark=True)

    assert result is None
    assert errors == ["Invalid ConnectionInfo is provided."]
