"""Tests for connection descriptor normalization."""

from __future__ import annotations

import pytest

from clusterui.connection import (
    ConnectionDescriptor,
    ConnectionInput,
    InvalidConnectionError,
    ProfileInput,
    normalize,
    parse_connection_source,
)
from clusterui.constants import DEFAULT_KNOX_PORT


def _options(**overrides: object) -> dict[str, object]:
    options: dict[str, object] = {"host": "h", "user": "root", "password": "p"}
    options.update(overrides)
    return {key: value for key, value in options.items() if value is not None}


def test_profile_and_connection_shapes_normalize_to_same_descriptor() -> None:
    profile = normalize(ProfileInput(id="p-1", options=_options(knoxport="8443")))
    connection = normalize(ConnectionInput(connection_id="c-1", options=_options(knoxport="8443")))

    assert profile == connection
    assert profile.uri == connection.uri == "objectexplorer://root@h:8443"
    assert profile.connection_id == "p-1"
    assert connection.connection_id == "c-1"


def test_missing_port_uses_default() -> None:
    descriptor = normalize(ConnectionInput(connection_id="c", options=_options()))

    assert descriptor.port == DEFAULT_KNOX_PORT == "30443"
    assert descriptor.server_name == "h,30443"


def test_numeric_port_is_stringified() -> None:
    descriptor = normalize(ConnectionInput(connection_id="c", options=_options(knoxport=30444)))

    assert descriptor.port == "30444"


@pytest.mark.parametrize("missing", ["host", "user", "password"])
def test_incomplete_connection_is_rejected(missing: str) -> None:
    options = _options()
    del options[missing]

    with pytest.raises(InvalidConnectionError):
        normalize(ConnectionInput(connection_id="c", options=options))


def test_matches_ignores_password() -> None:
    source = ConnectionInput(connection_id="c", options=_options())
    descriptor = normalize(source)
    other = normalize(ProfileInput(id="x", options=_options(password="different")))

    assert descriptor.matches(source)
    assert descriptor.matches(other)
    assert not descriptor.matches(normalize(ProfileInput(id="y", options=_options(user="admin"))))
    assert not descriptor.matches(None)


def test_matches_accepts_incomplete_sources() -> None:
    descriptor = normalize(ConnectionInput(connection_id="c", options=_options()))

    assert descriptor.matches(ProfileInput(id="x", options={"host": "h", "user": "root"}))
    assert not descriptor.matches(ProfileInput(id="x", options={"host": "other", "user": "root"}))


def test_descriptor_is_immutable_and_hides_password() -> None:
    descriptor = normalize(ConnectionInput(connection_id="c", options=_options()))

    with pytest.raises(AttributeError):
        descriptor.host = "elsewhere"  # type: ignore[misc]
    assert "password" not in repr(descriptor)


def test_hdfs_options_point_at_webhdfs_gateway() -> None:
    options = normalize(ConnectionInput(connection_id="c", options=_options())).hdfs_options()

    assert options.base_url == "https://h:30443/gateway/default/webhdfs/v1"
    assert options.auth.user == "root"
    assert options.auth.password == "p"


def test_parse_connection_source_picks_shape_from_keys() -> None:
    profile = parse_connection_source({"id": "abc", "options": _options(), "connectionName": "Cluster"})
    connection = parse_connection_source({"connectionId": "def", "options": _options()})

    assert isinstance(profile, ProfileInput) and profile.name == "Cluster"
    assert isinstance(connection, ConnectionInput)
    assert isinstance(ConnectionDescriptor.from_source(profile), ConnectionDescriptor)
    with pytest.raises(InvalidConnectionError):
        parse_connection_source({"options": _options()})
