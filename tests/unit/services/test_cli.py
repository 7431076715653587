"""
Unit tests for the meshcanary command-line entry point.

Tests:
- Service registry and argument parsing
- YAML loading with missing files and engine override merging
- main() one-shot runs, configuration errors and exit codes
"""

import logging
import socket
from pathlib import Path

import pytest

from meshcanary.__main__ import (
    CANARY_CONFIG,
    SERVICE_REGISTRY,
    _apply_canary_overrides,
    _load_yaml_dict,
    main,
    parse_args,
)
from meshcanary.services.api import Api
from meshcanary.services.monitor import Monitor


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def closed_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def canary_yaml(tmp_path: Path, closed_port: int) -> Path:
    path = tmp_path / "canary.yaml"
    path.write_text(
        "directory:\n"
        "  kind: static\n"
        "  static:\n"
        "    peers:\n"
        "      - key: nodekey:0001\n"
        "        host_name: loopback\n"
        "        addresses: [127.0.0.1]\n"
        "prober:\n"
        "  kind: tcp\n"
        f"  tcp_port: {closed_port}\n"
        "probe_timeout: 1.0\n",
        encoding="utf-8",
    )
    return path


def _service_yaml(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "service.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestRegistry:
    def test_services(self):
        assert set(SERVICE_REGISTRY) == {"monitor", "api"}
        assert SERVICE_REGISTRY["monitor"].cls is Monitor
        assert SERVICE_REGISTRY["api"].cls is Api
        assert SERVICE_REGISTRY["api"].config_path == Path("config/services/api.yaml")


class TestParseArgs:
    def test_defaults(self):
        args = parse_args(["monitor"])
        assert args.service == "monitor"
        assert args.config is None
        assert args.canary_config == CANARY_CONFIG
        assert args.log_level == "INFO"
        assert args.once is False

    def test_all_options(self):
        args = parse_args(
            [
                "api",
                "--config",
                "/etc/api.yaml",
                "--canary-config",
                "/etc/canary.yaml",
                "--log-level",
                "DEBUG",
                "--once",
            ]
        )
        assert args.config == Path("/etc/api.yaml")
        assert args.canary_config == Path("/etc/canary.yaml")
        assert args.log_level == "DEBUG"
        assert args.once is True

    def test_unknown_service(self):
        with pytest.raises(SystemExit):
            parse_args(["relay"])


class TestConfigHelpers:
    def test_missing_yaml_is_empty(self, tmp_path):
        assert _load_yaml_dict(tmp_path / "absent.yaml") == {}

    def test_existing_yaml(self, tmp_path):
        path = _service_yaml(tmp_path, "interval: 10\n")
        assert _load_yaml_dict(path) == {"interval": 10}

    def test_overrides_merge_sections(self):
        shared = {"prober": {"kind": "disco", "ping_type": "disco"}, "max_concurrency": 32}
        _apply_canary_overrides(
            shared, {"prober": {"ping_type": "TSMP"}, "max_concurrency": 4}
        )
        assert shared == {"prober": {"kind": "disco", "ping_type": "TSMP"}, "max_concurrency": 4}

    def test_override_adds_new_section(self):
        shared: dict = {}
        _apply_canary_overrides(shared, {"directory": {"kind": "static"}})
        assert shared == {"directory": {"kind": "static"}}

    def test_no_overrides(self):
        shared = {"max_concurrency": 8}
        _apply_canary_overrides(shared, None)
        assert shared == {"max_concurrency": 8}


class TestMain:
    @pytest.mark.asyncio
    async def test_monitor_once(self, tmp_path, canary_yaml):
        service = _service_yaml(tmp_path, "interval: 60\nround_deadline: 30\n")
        code = await main(
            ["monitor", "--once", "--config", str(service), "--canary-config", str(canary_yaml)]
        )
        assert code == 0

    @pytest.mark.asyncio
    async def test_service_canary_override(self, tmp_path, canary_yaml, caplog):
        service = _service_yaml(tmp_path, "interval: 60\ncanary:\n  max_concurrency: 2\n")
        with caplog.at_level(logging.INFO, logger="canary"):
            code = await main(
                [
                    "monitor",
                    "--once",
                    "--config",
                    str(service),
                    "--canary-config",
                    str(canary_yaml),
                ]
            )
        assert code == 0
        opened = next(r for r in caplog.records if r.getMessage() == "canary_opened")
        assert opened.structured_kv["max_concurrency"] == "2"

    @pytest.mark.asyncio
    async def test_invalid_canary_config(self, tmp_path):
        canary = tmp_path / "canary.yaml"
        canary.write_text("max_concurrency: 0\n", encoding="utf-8")
        code = await main(["monitor", "--once", "--canary-config", str(canary)])
        assert code == 1

    @pytest.mark.asyncio
    async def test_invalid_service_config(self, tmp_path, canary_yaml):
        service = _service_yaml(tmp_path, "interval: 0\n")
        code = await main(
            ["monitor", "--once", "--config", str(service), "--canary-config", str(canary_yaml)]
        )
        assert code == 1

    @pytest.mark.asyncio
    async def test_malformed_yaml(self, tmp_path, canary_yaml):
        service = _service_yaml(tmp_path, "interval: [60\n")
        code = await main(
            ["monitor", "--once", "--config", str(service), "--canary-config", str(canary_yaml)]
        )
        assert code == 1
