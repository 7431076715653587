"""Unit tests for models.constants module."""

from meshcanary.models import ConnectionType, PingType, ServiceName


class TestConnectionType:
    def test_wire_literals(self):
        assert {c.value for c in ConnectionType} == {
            "direct",
            "relay-server",
            "peer-relay",
            "offline",
            "unknown",
        }

    def test_str_enum(self):
        assert ConnectionType("relay-server") is ConnectionType.RELAY_SERVER
        assert str(ConnectionType.PEER_RELAY) == "peer-relay"


class TestPingType:
    def test_values(self):
        assert PingType("disco") is PingType.DISCO
        assert PingType.TSMP.value == "TSMP"


class TestServiceName:
    def test_values(self):
        assert {s.value for s in ServiceName} == {"monitor", "api"}
