"""
Tests for the tip floor query.
"""

from unittest.mock import Mock, patch

import pytest
import requests

from bundler.client import BundleSubmissionClient
from bundler.config import Config
from bundler.errors import TipFloorError

from conftest import FakeClock
from test_models import FLOOR


TIP_FLOOR_URL = "https://bundles.example/api/v1/bundles/tip_floor"


@pytest.fixture
def client(clock: FakeClock) -> BundleSubmissionClient:
    config = Config(endpoints=["https://a.example"], other_min_interval_ms=250)
    return BundleSubmissionClient(config, clock=clock, sleep=clock.sleep)


def floor_response(payload) -> Mock:
    return Mock(raise_for_status=Mock(), json=Mock(return_value=payload))


class TestTipFloor:
    """Tests for get_tip_floor_lamports."""

    @patch("bundler.client.requests.get")
    def test_default_percentile(self, mock_get: Mock, client: BundleSubmissionClient):
        mock_get.return_value = floor_response([FLOOR])

        assert client.get_tip_floor_lamports(TIP_FLOOR_URL) == 10_000
        mock_get.assert_called_once_with(TIP_FLOOR_URL, timeout=client.config.request_timeout)

    @patch("bundler.client.requests.get")
    def test_clamped(self, mock_get: Mock, client: BundleSubmissionClient):
        mock_get.return_value = floor_response([FLOOR])

        assert client.get_tip_floor_lamports(TIP_FLOOR_URL, 25, min_lamports=5_000) == 5_000
        assert client.get_tip_floor_lamports(TIP_FLOOR_URL, 99, max_lamports=50_000) == 50_000

    @patch("bundler.client.requests.get")
    def test_uses_other_gate(
        self, mock_get: Mock, client: BundleSubmissionClient, clock: FakeClock
    ):
        """Back to back tip floor queries are spaced by the other interval."""
        mock_get.return_value = floor_response([FLOOR])

        client.get_tip_floor_lamports(TIP_FLOOR_URL)
        client.get_tip_floor_lamports(TIP_FLOOR_URL)

        assert clock.sleeps == [pytest.approx(0.25)]

    @patch("bundler.client.requests.get")
    def test_unsupported_percentile_before_request(
        self, mock_get: Mock, client: BundleSubmissionClient
    ):
        with pytest.raises(ValueError):
            client.get_tip_floor_lamports(TIP_FLOOR_URL, percentile=60)
        mock_get.assert_not_called()

    @patch("bundler.client.requests.get")
    def test_inverted_clamps(self, mock_get: Mock, client: BundleSubmissionClient):
        with pytest.raises(ValueError):
            client.get_tip_floor_lamports(TIP_FLOOR_URL, min_lamports=10, max_lamports=5)
        mock_get.assert_not_called()

    @patch("bundler.client.requests.get")
    def test_empty_response(self, mock_get: Mock, client: BundleSubmissionClient):
        mock_get.return_value = floor_response([])

        with pytest.raises(TipFloorError, match="empty"):
            client.get_tip_floor_lamports(TIP_FLOOR_URL)

    @patch("bundler.client.requests.get")
    def test_http_error(self, mock_get: Mock, client: BundleSubmissionClient):
        response = floor_response([FLOOR])
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        mock_get.return_value = response

        with pytest.raises(TipFloorError, match="503"):
            client.get_tip_floor_lamports(TIP_FLOOR_URL)

    @patch("bundler.client.requests.get")
    def test_invalid_record(self, mock_get: Mock, client: BundleSubmissionClient):
        mock_get.return_value = floor_response([{"time": "now"}])

        with pytest.raises(TipFloorError, match="invalid"):
            client.get_tip_floor_lamports(TIP_FLOOR_URL)

    @patch("bundler.client.requests.get")
    def test_non_object_record(self, mock_get: Mock, client: BundleSubmissionClient):
        """A record that isn't a JSON object is reported, not crashed on."""
        mock_get.return_value = floor_response(["oops"])

        with pytest.raises(TipFloorError, match="invalid"):
            client.get_tip_floor_lamports(TIP_FLOOR_URL)
