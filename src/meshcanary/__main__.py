"""CLI entry point for meshcanary services.

Provides a unified command-line interface to run any meshcanary service.
Services can run in one-shot mode (``--once``) or continuously with a
Prometheus metrics server.

Examples:
    ```bash
    python -m meshcanary <service> [options]
    python -m meshcanary monitor --once
    python -m meshcanary api --log-level DEBUG
    python -m meshcanary monitor --canary-config /etc/meshcanary/canary.yaml
    ```
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from pydantic import ValidationError

from meshcanary.core import Canary, ConfigurationError, start_metrics_server
from meshcanary.core.base_service import BaseService
from meshcanary.core.logger import Logger, setup_logging
from meshcanary.core.yaml import load_yaml
from meshcanary.models.constants import ServiceName
from meshcanary.services.api import Api
from meshcanary.services.monitor import Monitor


CONFIG_BASE = Path("config")
CANARY_CONFIG = CONFIG_BASE / "canary.yaml"


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.MONITOR: ServiceEntry(Monitor, CONFIG_BASE / "services" / "monitor.yaml"),
    ServiceName.API: ServiceEntry(Api, CONFIG_BASE / "services" / "api.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service_class: type[BaseService[Any]],
    canary: Canary,
    service_dict: dict[str, Any],
    *,
    once: bool,
) -> int:
    """Run a service in one-shot or continuous mode.

    In one-shot mode, the service runs a single cycle and exits.
    In continuous mode, a Prometheus metrics server is started and the
    service runs indefinitely until a shutdown signal is received.

    Args:
        service_name: Service identifier used for logging.
        service_class: The BaseService subclass to instantiate.
        canary: Opened engine shared by the service.
        service_dict: Parsed service configuration (without ``canary`` key).
        once: If True, run a single cycle and exit. If False, run continuously.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if service_dict:
        service = service_class.from_dict(service_dict, canary=canary)
    else:
        service = service_class(canary=canary)

    # One-shot mode: single cycle, no metrics server
    if once:
        try:
            async with service:
                await service.run()
            logger.info(f"{service_name}_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
            return 1

    # Continuous mode: metrics server + indefinite operation
    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    # Signal handling for graceful shutdown
    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e), error_type=type(e).__name__)
        return 1
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = argparse.ArgumentParser(
        prog="meshcanary",
        description="meshcanary Service Runner",
    )

    parser.add_argument(
        "service",
        choices=list(SERVICE_REGISTRY.keys()),
        help="Service to run",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/services/<service>.yaml)",
    )

    parser.add_argument(
        "--canary-config",
        type=Path,
        default=CANARY_CONFIG,
        help=f"Engine config path (default: {CANARY_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (default: run continuously)",
    )

    return parser.parse_args(argv)


def _load_yaml_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


def _apply_canary_overrides(
    canary_dict: dict[str, Any],
    canary_overrides: dict[str, Any] | None,
) -> None:
    """Merge per-service engine overrides into the shared engine configuration.

    Top-level keys replace the shared value; nested sections (``directory``,
    ``prober``, ``localapi``) are merged key by key.
    """
    if not canary_overrides:
        return
    for key, value in canary_overrides.items():
        current = canary_dict.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            canary_dict[key] = {**current, **value}
        else:
            canary_dict[key] = value


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the engine, and run the service."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path

    try:
        canary_dict = _load_yaml_dict(args.canary_config)
        service_dict = _load_yaml_dict(config_path)
        _apply_canary_overrides(canary_dict, service_dict.pop("canary", None))
        canary = Canary.from_dict(canary_dict)
    except (ConfigurationError, ValidationError) as e:
        logger.error("config_invalid", error=str(e))
        return 1

    try:
        async with canary:
            return await run_service(
                service_name=args.service,
                service_class=entry.cls,
                canary=canary,
                service_dict=service_dict,
                once=args.once,
            )
    except ValidationError as e:
        logger.error("config_invalid", error=str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
