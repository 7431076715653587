"""LocalAPI socket client and bounded HTTP reading.

The utils layer depends only on third-party libraries (``aiohttp``) and
has **zero** imports from ``meshcanary.core`` or ``meshcanary.services``.
Adapters in [meshcanary.directory][meshcanary.directory] and
[meshcanary.probes][meshcanary.probes] translate its errors into the
[MeshCanaryError][meshcanary.core.exceptions.MeshCanaryError] hierarchy.

Attributes:
    localapi: [LocalApiClient][meshcanary.utils.localapi.LocalApiClient]
        talking to ``tailscaled`` over its unix socket.
    http: Size-bounded response body and JSON reading.
"""
