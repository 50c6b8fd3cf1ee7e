"""
Block Engine bundle submission client.

This package contains the JSON-RPC client that submits transaction
bundles with per-category rate gating, retries, endpoint fallback and
base64/base58 encoding fallback, plus its configuration.
"""

from .client import BundleSubmissionClient
from .config import Config
from .errors import (
    AllEndpointsExhaustedError,
    BundleClientError,
    PreconditionError,
    TipFloorError,
)
from .models import BundleStatus, CallCategory, Encoding, FailureKind, RpcOutcome, TipFloor

__all__ = [
    "AllEndpointsExhaustedError",
    "BundleClientError",
    "BundleStatus",
    "BundleSubmissionClient",
    "CallCategory",
    "Config",
    "Encoding",
    "FailureKind",
    "PreconditionError",
    "RpcOutcome",
    "TipFloor",
    "TipFloorError",
]
