"""
Unit tests for models.peer module.

Tests:
- Peer construction, normalization and validation
- Host name derivation from DNS names
- Identifier matching and machine wire format
- DirectorySnapshot key uniqueness, lookup and serialization
"""

from datetime import datetime

import pytest

from meshcanary.models import DirectorySnapshot, LinkStats, Peer, hostname_from_dns


class TestHostnameFromDns:
    def test_first_label(self):
        assert hostname_from_dns("iphone172.example.ts.net.") == "iphone172"

    def test_no_dots(self):
        assert hostname_from_dns("router") == "router"

    def test_empty(self):
        assert hostname_from_dns("") == "unknown"
        assert hostname_from_dns("  .") == "unknown"


class TestPeer:
    def test_lists_become_tuples(self):
        peer = Peer(key="k", addresses=["100.64.0.1"], tags=["tag:server"], ssh_host_keys=[])
        assert peer.addresses == ("100.64.0.1",)
        assert peer.tags == ("tag:server",)
        assert peer.ssh_host_keys == ()

    def test_frozen(self):
        peer = Peer(key="k")
        with pytest.raises(AttributeError):
            peer.key = "other"  # type: ignore[misc]

    def test_empty_key_rejected(self):
        with pytest.raises(ValueError):
            Peer(key="")

    def test_null_byte_rejected(self):
        with pytest.raises(ValueError):
            Peer(key="k", host_name="bad\x00name")

    def test_wrong_type_rejected(self):
        with pytest.raises(TypeError):
            Peer(key="k", online="yes")  # type: ignore[arg-type]

    def test_localhost_replaced_by_dns_label(self):
        peer = Peer(key="k", host_name="localhost", dns_name="iphone172.example.ts.net.")
        assert peer.host_name == "iphone172"

    def test_empty_host_name_without_dns(self):
        assert Peer(key="k").host_name == "unknown"

    def test_address_prefers_first_non_empty(self):
        peer = Peer(key="k", addresses=("", "100.64.0.9", "fd7a::9"))
        assert peer.address == "100.64.0.9"

    def test_address_none_without_addresses(self):
        assert Peer(key="k").address is None

    def test_matches(self, make_peer):
        peer = make_peer(3)
        assert peer.matches("nodekey:0003")
        assert peer.matches("node-3")
        assert peer.matches("node-3.example.ts.net")
        assert peer.matches("node-3.example.ts.net.")
        assert peer.matches("100.64.0.3")
        assert not peer.matches("node-4")

    def test_link_excluded_from_equality(self, make_peer, sample_link):
        assert make_peer(1) == make_peer(1, link=sample_link)

    def test_error_marks_unreadable_record(self):
        peer = Peer(key="machine-0", error="key must not be empty")
        assert peer.error == "key must not be empty"
        assert peer.address is None
        assert peer == Peer(key="machine-0")
        with pytest.raises(ValueError):
            Peer(key="machine-0", error="")

    def test_to_machine_dict(self, make_peer):
        peer = make_peer(
            2,
            ssh_host_keys=("ssh-ed25519 AAAA",),
            tags=("tag:ci",),
            user_login="alice@example.com",
        )
        assert peer.to_machine_dict() == {
            "nodeKey": "nodekey:0002",
            "hostName": "node-2",
            "dnsName": "node-2.example.ts.net.",
            "tailscaleIPs": ["100.64.0.2"],
            "os": "linux",
            "online": True,
            "sshHostKeys": ["ssh-ed25519 AAAA"],
            "tags": ["tag:ci"],
            "userLogin": "alice@example.com",
            "userDisplay": "",
        }


class TestLinkStats:
    def test_defaults(self):
        link = LinkStats()
        assert link.active is False
        assert link.rx_bytes == 0
        assert link.last_handshake is None

    def test_negative_counter_rejected(self):
        with pytest.raises(ValueError):
            LinkStats(rx_bytes=-1)

    def test_naive_handshake_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            LinkStats(last_handshake=datetime(2026, 1, 1))  # noqa: DTZ001


class TestDirectorySnapshot:
    def test_duplicate_keys_rejected(self, make_peer):
        with pytest.raises(ValueError, match="duplicate peer key"):
            DirectorySnapshot(peers=(make_peer(1), make_peer(2, key="nodekey:0001")))

    def test_list_normalized(self, peers):
        snapshot = DirectorySnapshot(peers=peers)
        assert isinstance(snapshot.peers, tuple)
        assert snapshot.taken_at.tzinfo is not None

    def test_find_prefers_exact_key(self, make_peer):
        # node-2's host name equals node-1's key
        first = make_peer(1)
        second = make_peer(2, host_name="nodekey:0001")
        snapshot = DirectorySnapshot(peers=(second, first))
        assert snapshot.find("nodekey:0001") is first

    def test_find_by_address(self, peers):
        snapshot = DirectorySnapshot(peers=peers)
        assert snapshot.find("100.64.0.2") is peers[1]
        assert snapshot.find("missing") is None

    def test_to_machines_dict_ssh_only(self, make_peer):
        with_ssh = make_peer(1, ssh_host_keys=("ssh-ed25519 AAAA",))
        without_ssh = make_peer(2)
        local = make_peer(9, host_name="me")
        snapshot = DirectorySnapshot(peers=(with_ssh, without_ssh), self_peer=local)

        doc = snapshot.to_machines_dict()
        assert [m["hostName"] for m in doc["machines"]] == ["node-1"]
        assert doc["self"]["hostName"] == "me"

        everything = snapshot.to_machines_dict(ssh_only=False)
        assert [m["hostName"] for m in everything["machines"]] == ["node-1", "node-2"]

    def test_exit_node_id(self):
        assert DirectorySnapshot().exit_node_id is None
        assert DirectorySnapshot(exit_node_id="nodekey:exit").exit_node_id == "nodekey:exit"
        with pytest.raises(TypeError):
            DirectorySnapshot(exit_node_id=7)

    def test_to_machines_dict_without_self(self):
        assert DirectorySnapshot().to_machines_dict() == {"machines": [], "self": {}}
