"""MeshCanary exception hierarchy.

Typed exceptions let the services tell a broken directory apart from a
bad request, and let ``CancelledError`` propagate untouched.

Exception hierarchy:

```text
MeshCanaryError (base -- never raised directly)
├── ConfigurationError         -- config validation, missing keys, bad YAML
├── DirectoryUnavailableError  -- membership directory unreachable or malformed
├── InvalidTargetError         -- peer cannot be probed (no mesh address)
├── ProbeTimeoutError          -- probe did not answer in time
└── PeerNotFoundError          -- identifier matches no known peer
```

Probe errors never escape a probe round: the
[FanOutCoordinator][meshcanary.probes.coordinator.FanOutCoordinator]
converts them into failed
[ProbeResult][meshcanary.models.probe.ProbeResult] entries.

See Also:
    [PeerDirectory][meshcanary.directory.base.PeerDirectory]: Raises
        [DirectoryUnavailableError][meshcanary.core.exceptions.DirectoryUnavailableError].
    [Canary][meshcanary.core.canary.Canary]: Raises
        [PeerNotFoundError][meshcanary.core.exceptions.PeerNotFoundError]
        for unknown identifiers.
    [BaseService][meshcanary.core.base_service.BaseService]: Catches all
        [MeshCanaryError][meshcanary.core.exceptions.MeshCanaryError]
        subclasses in the
        [run_forever()][meshcanary.core.base_service.BaseService.run_forever]
        loop.
"""

from __future__ import annotations


class MeshCanaryError(Exception):
    """Base exception for all MeshCanary errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(MeshCanaryError):
    """Invalid or missing configuration (YAML, CLI flags).

    See Also:
        [load_yaml()][meshcanary.core.yaml.load_yaml]: YAML loading function
            that may trigger configuration errors.
    """


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


class DirectoryUnavailableError(MeshCanaryError):
    """The membership directory could not be read.

    Raised when the daemon socket or machines endpoint is unreachable,
    answers with a non-success status, or returns a document that cannot
    be decoded. The API surfaces it as ``503 Service Unavailable``.
    """


class PeerNotFoundError(MeshCanaryError):
    """No peer in the current snapshot matches the requested identifier.

    The API surfaces it as ``404 Not Found``.
    """

    def __init__(self, identifier: str) -> None:
        super().__init__(f"peer not found: {identifier}")
        self.identifier = identifier


# ---------------------------------------------------------------------------
# Probing
# ---------------------------------------------------------------------------


class InvalidTargetError(MeshCanaryError):
    """The peer cannot be probed, typically because it has no mesh address."""


class ProbeTimeoutError(MeshCanaryError):
    """The probe did not complete within its timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(f"probe timed out after {timeout:g}s")
        self.timeout = timeout
