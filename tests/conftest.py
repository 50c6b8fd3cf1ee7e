"""
Shared fixtures for client tests.
"""

from types import SimpleNamespace
from typing import Any
from unittest.mock import Mock

import pytest


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_response(
    status_code: int = 200,
    payload: Any = None,
    text: str | None = None,
    headers: dict[str, str] | None = None,
) -> Mock:
    """Build a mock requests.Response."""
    response = Mock(status_code=status_code, headers=headers or {})
    if payload is None:
        response.json = Mock(side_effect=ValueError("No JSON"))
        response.text = text or ""
    else:
        response.json = Mock(return_value=payload)
        response.text = text if text is not None else str(payload)
    return response


def rpc_result(result: Any) -> Mock:
    return make_response(200, {"jsonrpc": "2.0", "id": 1, "result": result})


def rpc_error(message: str, code: int = -32602, status_code: int = 200) -> Mock:
    return make_response(
        status_code,
        {"jsonrpc": "2.0", "id": 1, "error": {"code": code, "message": message}},
    )


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at t=1000s."""
    return FakeClock()


@pytest.fixture
def responses():
    """Response builders: make_response, rpc_result, rpc_error."""
    return SimpleNamespace(make=make_response, result=rpc_result, error=rpc_error)
