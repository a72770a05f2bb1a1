"""Exception taxonomy for the relay daemon."""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all relay errors."""


class UpstreamUnavailable(RelayError):
    """A chain query failed. Fatal when raised during startup or resync."""


class SigningError(RelayError):
    """The signing service refused or failed to sign a transaction."""


class BeaconError(RelayError):
    """The beacon source is misconfigured or its stream terminated."""


class BroadcastError(RelayError):
    """A single endpoint failed to deliver a transaction."""

    def __init__(
        self,
        endpoint: str,
        message: str,
        code: int | None = None,
        raw_log: str = "",
    ) -> None:
        super().__init__(f"{endpoint}: {message}")
        self.endpoint = endpoint
        self.code = code
        self.raw_log = raw_log


class AllBroadcastsFailed(RelayError):
    """Every configured endpoint failed to deliver the transaction."""

    def __init__(self, errors: dict[str, BaseException]) -> None:
        # BroadcastError already names its endpoint; timeouts have an empty str()
        summary = "; ".join(
            str(exc) if isinstance(exc, BroadcastError) else f"{name}: {exc!r}"
            for name, exc in errors.items()
        )
        super().__init__(f"all {len(errors)} broadcasts failed ({summary})")
        self.errors = errors
