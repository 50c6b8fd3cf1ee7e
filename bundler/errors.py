"""
Errors raised by the bundle submission client.

Network and protocol failures are handled inside the client up to the
point where every endpoint has been tried. Only the errors below cross
the client boundary:

- `PreconditionError`: bad input, raised before any network I/O.
- `AllEndpointsExhaustedError`: terminal failure, carries the last
  classified attempt for diagnostics.
- `TipFloorError`: the tip floor REST query failed.
"""

from .models import FailureKind, RpcOutcome


class BundleClientError(Exception):
    """Base error for the bundle submission client."""


class PreconditionError(BundleClientError, ValueError):
    """Invalid input detected before any request was made."""


class AllEndpointsExhaustedError(BundleClientError):
    """
    Every configured endpoint failed for one operation.

    Attributes:
        method: JSON-RPC method that failed.
        last_failure: Outcome of the last attempt on the last endpoint tried.
        endpoints_tried: Number of endpoints attempted.
    """

    def __init__(self, method: str, last_failure: RpcOutcome, endpoints_tried: int):
        super().__init__(
            f"All {endpoints_tried} endpoint(s) failed for {method} "
            f"(last error: {last_failure.describe()})"
        )
        self.method = method
        self.last_failure = last_failure
        self.endpoints_tried = endpoints_tried

    @property
    def kind(self) -> FailureKind | None:
        return self.last_failure.kind


class TipFloorError(BundleClientError):
    """Tip floor endpoint returned an error or an unusable body."""
