"""
Value types shared by the bundle submission client.

The client never hands raw response dicts to callers. Bundle status
records and tip floor records are decoded into the frozen dataclasses
below, and every HTTP attempt produces an `RpcOutcome` that the retry
engine inspects and then drops.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


LAMPORTS_PER_SOL = 1_000_000_000


class CallCategory(Enum):
    """Rate limiting category of a call. Each category has its own gate."""

    SUBMIT_BUNDLE = "submit_bundle"
    TIP_ACCOUNTS = "tip_accounts"
    OTHER = "other"

    @classmethod
    def for_method(cls, method: str) -> "CallCategory":
        """
        Map a JSON-RPC method name to its category.

        Example:
            ```python
            CallCategory.for_method("sendBundle")         # SUBMIT_BUNDLE
            CallCategory.for_method("getBundleStatuses")  # OTHER
            ```
        """
        if method == "sendBundle":
            return cls.SUBMIT_BUNDLE
        if method == "getTipAccounts":
            return cls.TIP_ACCOUNTS
        return cls.OTHER


class Encoding(Enum):
    """Text encoding applied to raw transaction bytes in `sendBundle`."""

    BASE64 = "base64"
    BASE58 = "base58"


class FailureKind(Enum):
    """Classification of a failed HTTP attempt."""

    TRANSIENT_NETWORK = "transient_network"  # timeout, connection reset
    TRANSIENT_REMOTE = "transient_remote"  # HTTP 429 / 5xx
    ENCODING_REJECTED = "encoding_rejected"
    ENDPOINT_FATAL = "endpoint_fatal"

    @property
    def is_transient(self) -> bool:
        return self in (FailureKind.TRANSIENT_NETWORK, FailureKind.TRANSIENT_REMOTE)


@dataclass(frozen=True)
class RpcOutcome:
    """
    Result of one RPC call attempt against one endpoint.

    On success, `ok` is True and `result` holds the JSON-RPC `result`
    value (decoded by the operation once the endpoint yields success).
    On failure, `kind` classifies the failure and `message` describes it.

    Attributes:
        ok: Whether the attempt succeeded.
        result: JSON-RPC result payload on success.
        kind: Failure classification, None on success.
        message: Human readable failure description.
        status_code: HTTP status, if a response was received.
        rpc_error_code: JSON-RPC `error.code`, if the remote sent one.
        retry_after: Server suggested wait in seconds (HTTP 429).
        endpoint: URL the attempt was made against.
        attempts: HTTP attempts made against `endpoint` for this outcome.
    """

    ok: bool
    result: Any = None
    kind: FailureKind | None = None
    message: str = ""
    status_code: int | None = None
    rpc_error_code: int | None = None
    retry_after: float | None = None
    endpoint: str = ""
    attempts: int = 1

    @classmethod
    def success(cls, result: Any, endpoint: str = "", **kwargs: Any) -> "RpcOutcome":
        return cls(ok=True, result=result, endpoint=endpoint, **kwargs)

    @classmethod
    def failure(cls, kind: FailureKind, message: str, **kwargs: Any) -> "RpcOutcome":
        return cls(ok=False, kind=kind, message=message, **kwargs)

    @property
    def is_transient(self) -> bool:
        return self.kind is not None and self.kind.is_transient

    def describe(self) -> str:
        """One-line summary used in logs and the terminal error."""
        if self.ok:
            return f"ok from {self.endpoint}"
        parts = [self.kind.value if self.kind else "unknown"]
        if self.status_code is not None:
            parts.append(f"HTTP {self.status_code}")
        if self.endpoint:
            parts.append(f"at {self.endpoint}")
        parts.append(f"after {self.attempts} attempt(s)")
        return f"{' '.join(parts)}: {self.message}"


@dataclass(frozen=True)
class BundleStatus:
    """
    Status record for one bundle, as returned by `getBundleStatuses`.

    Deployments differ slightly in field naming, so `from_dict` accepts
    both `bundle_id` and `bundleId`.
    """

    bundle_id: str | None = None
    status: str | None = None
    confirmation_status: str | None = None
    slot: int | None = None
    transactions: list[str] = field(default_factory=list)
    err: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BundleStatus":
        if not isinstance(data, dict):
            raise ValueError(f"Bundle status must be an object, got {data!r}")
        bundle_id = data.get("bundle_id", data.get("bundleId"))
        confirmation = data.get("confirmation_status", data.get("confirmationStatus"))
        transactions = data.get("transactions") or []
        if not isinstance(transactions, list):
            raise ValueError(f"Bundle status transactions must be a list, got {transactions!r}")
        slot = data.get("slot")
        return cls(
            bundle_id=bundle_id,
            status=data.get("status"),
            confirmation_status=confirmation,
            slot=int(slot) if slot is not None else None,
            transactions=[str(tx) for tx in transactions],
            err=data.get("err"),
        )

    @property
    def landed(self) -> bool:
        """True once the bundle's transaction signatures are known."""
        return bool(self.transactions)


@dataclass(frozen=True)
class TipFloor:
    """
    One record of the Block Engine tip floor REST endpoint.

    Values are in SOL.
    """

    landed_tips_25th_percentile: float
    landed_tips_50th_percentile: float
    landed_tips_75th_percentile: float
    landed_tips_95th_percentile: float
    landed_tips_99th_percentile: float
    ema_landed_tips_50th_percentile: float | None = None
    time: str | None = None

    SUPPORTED_PERCENTILES = (25, 50, 75, 95, 99)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TipFloor":
        if not isinstance(data, dict):
            raise ValueError(f"Tip floor record must be an object, got {data!r}")
        ema = data.get("ema_landed_tips_50th_percentile")
        return cls(
            landed_tips_25th_percentile=float(data["landed_tips_25th_percentile"]),
            landed_tips_50th_percentile=float(data["landed_tips_50th_percentile"]),
            landed_tips_75th_percentile=float(data["landed_tips_75th_percentile"]),
            landed_tips_95th_percentile=float(data["landed_tips_95th_percentile"]),
            landed_tips_99th_percentile=float(data["landed_tips_99th_percentile"]),
            ema_landed_tips_50th_percentile=float(ema) if ema is not None else None,
            time=data.get("time"),
        )

    def landed_percentile(self, percentile: int) -> float:
        """
        Landed tip at a percentile, in SOL.

        Raises:
            ValueError: If percentile is not one of 25, 50, 75, 95, 99.
        """
        if percentile not in self.SUPPORTED_PERCENTILES:
            raise ValueError(
                f"Unsupported tip percentile {percentile} (use 25, 50, 75, 95, 99)"
            )
        return getattr(self, f"landed_tips_{percentile}th_percentile")

    def lamports(self, percentile: int = 50, use_ema: bool = False) -> int:
        """Selected tip converted to lamports, rounded up."""
        if use_ema and percentile == 50 and self.ema_landed_tips_50th_percentile is not None:
            sol = self.ema_landed_tips_50th_percentile
        else:
            sol = self.landed_percentile(percentile)
        # round first so float noise like 10000.000000000002 doesn't add a lamport
        return math.ceil(round(sol * LAMPORTS_PER_SOL, 6))
