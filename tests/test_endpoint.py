import logging

import pytest

from tcp_wait.endpoint import Endpoint, InvalidEndpointError, discover_endpoints, merge_endpoints


def test_address_and_port():
    assert Endpoint("DB", "10.0.0.5", 5432).address_and_port == "10.0.0.5:5432"


def test_address_and_port_brackets_ipv6():
    assert Endpoint("DB", "::1", 80).address_and_port == "[::1]:80"


@pytest.mark.parametrize("port", [0, 65536, -1])
def test_port_out_of_range_rejected(port):
    with pytest.raises(InvalidEndpointError):
        Endpoint("DB", "localhost", port)


def test_empty_name_and_address_rejected():
    with pytest.raises(InvalidEndpointError):
        Endpoint("", "localhost", 80)
    with pytest.raises(InvalidEndpointError):
        Endpoint("DB", "", 80)


def test_endpoint_is_immutable():
    endpoint = Endpoint("DB", "localhost", 80)
    with pytest.raises(AttributeError):
        endpoint.port = 81  # type: ignore[misc]


def test_parse_named():
    assert Endpoint.parse("db=postgres:5432") == Endpoint("db", "postgres", 5432)


def test_parse_unnamed_uses_target_as_name():
    assert Endpoint.parse("localhost:6379") == Endpoint("localhost:6379", "localhost", 6379)


def test_parse_ipv6():
    assert Endpoint.parse("v6=[::1]:8080") == Endpoint("v6", "::1", 8080)


@pytest.mark.parametrize("spec", ["db=postgres", "db=postgres:abc", "db=:5432", "db=host:0"])
def test_parse_invalid(spec):
    with pytest.raises(InvalidEndpointError):
        Endpoint.parse(spec)


def test_discover_endpoints_from_mapping(caplog):
    environ = {
        "PATH": "/usr/bin",
        "DB_TCP_ADDR": "10.0.0.5",
        "DB_TCP_PORT": "5432",
        "BROKEN_TCP_ADDR": "10.0.0.6",
        "BROKEN_TCP_PORT": "not-a-port",
        "CACHE_TCP_ADDR": "10.0.0.7",
        "CACHE_TCP_PORT": "6379",
    }
    with caplog.at_level(logging.WARNING, logger="tcp-wait"):
        endpoints = discover_endpoints(environ)

    assert endpoints == [
        Endpoint("DB", "10.0.0.5", 5432),
        Endpoint("CACHE", "10.0.0.7", 6379),
    ]
    assert "BROKEN_TCP_PORT" in caplog.text
    assert "skipping endpoint 'BROKEN'" in caplog.text


def test_discover_skips_missing_port_and_invalid_values(caplog):
    environ = {
        "NOPORT_TCP_ADDR": "10.0.0.5",
        "HIGH_TCP_ADDR": "10.0.0.6",
        "HIGH_TCP_PORT": "70000",
        "EMPTY_TCP_ADDR": "",
        "EMPTY_TCP_PORT": "80",
    }
    with caplog.at_level(logging.WARNING, logger="tcp-wait"):
        assert discover_endpoints(environ) == []
    assert len(caplog.records) == 3


def test_discover_reads_process_environment(monkeypatch):
    monkeypatch.setenv("UPSTREAM_TCP_ADDR", "127.0.0.1")
    monkeypatch.setenv("UPSTREAM_TCP_PORT", "8080")

    assert Endpoint("UPSTREAM", "127.0.0.1", 8080) in discover_endpoints()


def test_merge_endpoints_later_definition_wins(caplog):
    discovered = [Endpoint("DB", "10.0.0.5", 5432), Endpoint("CACHE", "10.0.0.7", 6379)]
    explicit = [Endpoint("DB", "127.0.0.1", 5432)]

    with caplog.at_level(logging.WARNING, logger="tcp-wait"):
        merged = merge_endpoints(discovered, explicit)

    assert merged == [Endpoint("DB", "127.0.0.1", 5432), Endpoint("CACHE", "10.0.0.7", 6379)]
    assert "Endpoint 'DB' defined more than once" in caplog.text


def test_merge_endpoints_drops_exact_duplicates_quietly(caplog):
    endpoint = Endpoint("DB", "10.0.0.5", 5432)

    with caplog.at_level(logging.WARNING, logger="tcp-wait"):
        assert merge_endpoints([endpoint], [endpoint]) == [endpoint]
    assert caplog.records == []
