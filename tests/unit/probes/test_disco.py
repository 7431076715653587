"""
Unit tests for probes.disco module.

Tests:
- result_from_ping() conversion of LocalAPI ping results
- DiscoProber transport faults and timeout propagation
- Ping type variants sharing the client
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from meshcanary.models import ConnectionType, PingType
from meshcanary.probes import DiscoProber, classified
from meshcanary.probes.disco import result_from_ping
from meshcanary.utils.localapi import LocalApiClient, LocalApiError


@pytest.fixture
def client() -> MagicMock:
    mock = MagicMock(spec=LocalApiClient)
    mock.ping = AsyncMock(return_value={})
    mock.open = AsyncMock()
    mock.close = AsyncMock()
    return mock


class TestResultFromPing:
    def test_direct(self):
        result = result_from_ping(
            "100.64.0.1",
            {
                "IP": "100.64.0.1",
                "NodeName": "node-a",
                "Endpoint": "10.0.0.5:41641",
                "DERPRegionID": 0,
                "LatencySeconds": 0.0123,
            },
        )
        assert result.success is True
        assert result.latency_ms == pytest.approx(12.3)
        assert result.path.endpoint == "10.0.0.5:41641"
        assert result.path.relay_region_id is None
        assert classified(result).connection_type == ConnectionType.DIRECT

    def test_relay_server(self):
        result = result_from_ping(
            "100.64.0.3",
            {
                "NodeName": "node-c",
                "DERPRegionID": 7,
                "DERPRegionCode": "fra",
                "LatencySeconds": 0.08,
            },
        )
        data = classified(result).to_dict()
        assert data["connectionType"] == "relay-server"
        assert data["relayRegionId"] == 7
        assert data["relayRegion"] == "fra"
        assert "endpoint" not in data

    def test_peer_relay(self):
        result = result_from_ping(
            "100.64.0.4", {"PeerRelay": "100.64.0.9:7777", "LatencySeconds": 0.02}
        )
        assert classified(result).connection_type == ConnectionType.PEER_RELAY

    def test_error(self, make_peer):
        result = result_from_ping("100.64.0.2", {"Err": "no reply"}, peer=make_peer(2))
        assert result.success is False
        assert result.error == "no reply"
        assert result.node_name == "node-2"
        assert result.peer_key == "nodekey:0002"

    def test_bad_latency_ignored(self):
        result = result_from_ping(
            "100.64.0.1", {"LatencySeconds": "fast", "Endpoint": "1.2.3.4:5"}
        )
        assert result.latency_ms == 0.0

    def test_node_name_falls_back_to_peer(self, make_peer):
        result = result_from_ping("100.64.0.1", {"Endpoint": "1.2.3.4:5"}, peer=make_peer(1))
        assert result.node_name == "node-1"


class TestDiscoProber:
    @pytest.mark.asyncio
    async def test_probe_passes_type_and_timeout(self, client, make_peer):
        client.ping.return_value = {"Endpoint": "10.0.0.5:41641", "LatencySeconds": 0.001}
        prober = DiscoProber(client)
        result = await prober.probe(make_peer(1), 2.5)
        client.ping.assert_awaited_once_with("100.64.0.1", ping_type="disco", timeout=2.5)
        assert result.success is True

    @pytest.mark.asyncio
    async def test_localapi_error_is_failure(self, client, make_peer):
        client.ping.side_effect = LocalApiError(500, "no matching peer")
        result = await DiscoProber(client).probe(make_peer(1), 1.0)
        assert result.success is False
        assert "no matching peer" in result.error

    @pytest.mark.asyncio
    async def test_connection_error_is_failure(self, client, make_peer):
        client.ping.side_effect = aiohttp.ClientConnectionError("socket missing")
        result = await DiscoProber(client).probe(make_peer(1), 1.0)
        assert result.success is False
        assert result.error == "socket missing"

    @pytest.mark.asyncio
    async def test_timeout_propagates(self, client, make_peer):
        client.ping.side_effect = TimeoutError()
        with pytest.raises(TimeoutError):
            await DiscoProber(client).probe(make_peer(1), 1.0)

    def test_with_ping_type(self, client):
        prober = DiscoProber(client, owns_client=True)
        variant = prober.with_ping_type(PingType.TSMP)
        assert variant.ping_type == PingType.TSMP
        assert prober.ping_type == PingType.DISCO

    @pytest.mark.asyncio
    async def test_variant_uses_type_and_never_closes_client(self, client, make_peer):
        client.ping.return_value = {"Endpoint": "10.0.0.5:41641"}
        variant = DiscoProber(client, owns_client=True).with_ping_type(PingType.ICMP)
        await variant.probe(make_peer(1), 1.0)
        assert client.ping.await_args.kwargs["ping_type"] == "ICMP"
        await variant.close()
        client.close.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_owned_client_lifecycle(self, client):
        async with DiscoProber(client, owns_client=True):
            client.open.assert_awaited_once()
        client.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_shared_client_untouched(self, client):
        async with DiscoProber(client):
            pass
        client.open.assert_not_awaited()
        client.close.assert_not_awaited()
