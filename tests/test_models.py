"""
Tests for value types.
"""

import pytest

from bundler.models import (
    BundleStatus,
    CallCategory,
    FailureKind,
    RpcOutcome,
    TipFloor,
)


FLOOR = {
    "time": "2026-01-01T00:00:00Z",
    "landed_tips_25th_percentile": 0.000001,
    "landed_tips_50th_percentile": 0.00001,
    "landed_tips_75th_percentile": 0.0001,
    "landed_tips_95th_percentile": 0.001,
    "landed_tips_99th_percentile": 0.01,
    "ema_landed_tips_50th_percentile": 0.000015,
}


class TestCallCategory:
    def test_for_method(self):
        assert CallCategory.for_method("sendBundle") is CallCategory.SUBMIT_BUNDLE
        assert CallCategory.for_method("getTipAccounts") is CallCategory.TIP_ACCOUNTS
        assert CallCategory.for_method("getBundleStatuses") is CallCategory.OTHER
        assert CallCategory.for_method("anythingElse") is CallCategory.OTHER


class TestRpcOutcome:
    def test_transient_kinds(self):
        assert FailureKind.TRANSIENT_NETWORK.is_transient is True
        assert FailureKind.TRANSIENT_REMOTE.is_transient is True
        assert FailureKind.ENCODING_REJECTED.is_transient is False
        assert FailureKind.ENDPOINT_FATAL.is_transient is False

    def test_success_is_not_transient(self):
        assert RpcOutcome.success("x").is_transient is False

    def test_describe_failure(self):
        outcome = RpcOutcome.failure(
            FailureKind.TRANSIENT_REMOTE,
            "busy",
            status_code=503,
            endpoint="https://a.example/api/v1/bundles",
            attempts=3,
        )

        assert outcome.describe() == (
            "transient_remote HTTP 503 at https://a.example/api/v1/bundles "
            "after 3 attempt(s): busy"
        )


class TestBundleStatus:
    def test_from_dict_snake_case(self):
        status = BundleStatus.from_dict(
            {"bundle_id": "b1", "slot": "42", "transactions": ["s1"], "status": "Landed"}
        )

        assert status.bundle_id == "b1"
        assert status.slot == 42
        assert status.transactions == ["s1"]
        assert status.status == "Landed"

    def test_from_dict_camel_case(self):
        status = BundleStatus.from_dict({"bundleId": "b1", "confirmationStatus": "finalized"})

        assert status.bundle_id == "b1"
        assert status.confirmation_status == "finalized"
        assert status.transactions == []

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError):
            BundleStatus.from_dict("b1")

    def test_from_dict_rejects_bad_transactions(self):
        with pytest.raises(ValueError):
            BundleStatus.from_dict({"bundle_id": "b1", "transactions": "s1"})


class TestTipFloor:
    def test_percentiles(self):
        floor = TipFloor.from_dict(FLOOR)

        assert floor.landed_percentile(25) == 0.000001
        assert floor.landed_percentile(99) == 0.01

    def test_unsupported_percentile(self):
        floor = TipFloor.from_dict(FLOOR)

        with pytest.raises(ValueError, match="Unsupported"):
            floor.landed_percentile(60)

    def test_lamports(self):
        floor = TipFloor.from_dict(FLOOR)

        assert floor.lamports(50) == 10_000
        assert floor.lamports(95) == 1_000_000

    def test_lamports_rounds_up(self):
        floor = TipFloor.from_dict({**FLOOR, "landed_tips_50th_percentile": 0.0000000015})

        assert floor.lamports(50) == 2

    def test_ema_only_for_50th(self):
        floor = TipFloor.from_dict(FLOOR)

        assert floor.lamports(50, use_ema=True) == 15_000
        assert floor.lamports(75, use_ema=True) == 100_000

    def test_ema_missing_uses_landed(self):
        data = {k: v for k, v in FLOOR.items() if k != "ema_landed_tips_50th_percentile"}
        floor = TipFloor.from_dict(data)

        assert floor.lamports(50, use_ema=True) == 10_000

    def test_missing_field(self):
        data = {k: v for k, v in FLOOR.items() if k != "landed_tips_99th_percentile"}

        with pytest.raises(KeyError):
            TipFloor.from_dict(data)

    def test_from_dict_rejects_non_object(self):
        with pytest.raises(ValueError):
            TipFloor.from_dict("oops")
