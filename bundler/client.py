"""
JSON-RPC client for Block Engine bundle submission.

`BundleSubmissionClient` exposes the Block Engine bundle methods and
runs every call through the same protocol:

1. Wait on the rate gate of the call's category
2. POST the JSON-RPC body to the current endpoint (hard per-call timeout)
3. Retry transient failures (429, 5xx, timeouts) with exponential backoff
4. For `sendBundle`, resend once as base58 if the endpoint can't decode base64
5. Move on to the next endpoint once the current one is exhausted

Only two errors leave the client: `PreconditionError` for bad input
(before any request) and `AllEndpointsExhaustedError` when every
endpoint failed.

Example:
    ```python
    from bundler import BundleSubmissionClient, Config

    client = BundleSubmissionClient(Config(endpoints=[
        "https://frankfurt.mainnet.block-engine.jito.wtf",
        "https://ny.mainnet.block-engine.jito.wtf",
    ]))

    tip_accounts = client.get_tip_accounts()
    bundle_id = client.send_bundle([tx1_bytes, tx2_bytes])
    signatures = client.wait_for_landed_signatures(bundle_id, timeout=2.0)
    ```
"""

import itertools
import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from dataclasses import replace
from typing import Any, Callable, Iterable

import requests

from .config import Config
from .encoding import encode_transactions, is_encoding_rejection, next_encoding
from .errors import AllEndpointsExhaustedError, PreconditionError, TipFloorError
from .models import BundleStatus, CallCategory, Encoding, FailureKind, RpcOutcome, TipFloor
from .rate_gate import RateGates
from .retry import ExponentialBackoff, parse_retry_after


logger = logging.getLogger(__name__)

# Longest error body kept in failure messages
MAX_ERROR_BODY = 200


class BundleSubmissionClient:
    """
    Block Engine client with rate gating, retries and endpoint fallback.

    Endpoints are tried strictly one after another, never in parallel,
    so a bundle is only ever in flight against one Block Engine.

    Attributes:
        config: Client configuration.
        gates: Rate gates, one per call category, shared by all endpoints.
    """

    def __init__(
        self,
        config: Config,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize client.

        Args:
            config: Client configuration. Endpoints are normalized here.
            clock: Monotonic clock, in seconds.
            sleep: Function used for every wait (rate gates, backoff, polling).
        """
        self.config = config
        self._endpoints = config.get_endpoints()
        self._clock = clock
        self._sleep = sleep
        self.gates = RateGates(
            {category: config.min_interval_ms(category) for category in CallCategory},
            clock=clock,
            sleep=sleep,
        )
        self._request_ids = itertools.count(1)
        self._tip_accounts: list[str] | None = None
        self._tip_accounts_at = 0.0

    @classmethod
    def from_urls(cls, urls: Iterable[str], **config_fields: Any) -> "BundleSubmissionClient":
        """
        Create a client for a list of URLs with otherwise default config.

        Example:
            ```python
            client = BundleSubmissionClient.from_urls(
                ["https://ny.mainnet.block-engine.jito.wtf"], max_attempts=5
            )
            ```
        """
        return cls(Config(endpoints=list(urls), **config_fields))

    @property
    def endpoints(self) -> tuple[str, ...]:
        """Normalized endpoint URLs in fallback order."""
        return self._endpoints

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def get_tip_accounts(self) -> list[str]:
        """
        Fetch the accounts the Block Engine accepts tips on.

        When `config.tip_accounts_ttl` is positive, the list is reused for
        that many seconds without another request.

        Returns:
            List of base58 account addresses.

        Raises:
            PreconditionError: If no endpoints are configured.
            AllEndpointsExhaustedError: If every endpoint failed.
        """
        ttl = self.config.tip_accounts_ttl
        if ttl > 0 and self._tip_accounts is not None:
            if self._clock() - self._tip_accounts_at < ttl:
                return list(self._tip_accounts)

        accounts = self._call("getTipAccounts", lambda _encoding: [], _decode_tip_accounts)
        if ttl > 0:
            self._tip_accounts = list(accounts)
            self._tip_accounts_at = self._clock()
        return accounts

    def send_bundle(self, txs: Iterable[bytes]) -> str:
        """
        Submit a bundle of signed, serialized transactions.

        Transactions are sent base64 encoded. If an endpoint reports that
        it could not decode them, they are re-encoded as base58 and sent
        once more to the same endpoint before falling back.

        Args:
            txs: Raw transaction bytes, in bundle order.

        Returns:
            Bundle id assigned by the Block Engine.

        Raises:
            PreconditionError: If no endpoints are configured, `txs` is
                empty or contains something other than bytes.
            AllEndpointsExhaustedError: If every endpoint failed.

        Example:
            ```python
            bundle_id = client.send_bundle([liquidation_tx, tip_tx])
            ```
        """
        bundle = tuple(txs)
        if not bundle:
            raise PreconditionError("Bundle must contain at least one transaction")
        for index, tx in enumerate(bundle):
            if not isinstance(tx, (bytes, bytearray, memoryview)):
                raise PreconditionError(
                    f"Transaction #{index} must be bytes, got {type(tx).__name__}"
                )
        bundle = tuple(bytes(tx) for tx in bundle)

        bundle_id = self._call(
            "sendBundle",
            lambda encoding: [encode_transactions(bundle, encoding)],
            _decode_bundle_id,
            encoded_payload=True,
        )
        logger.info(f"Submitted bundle {bundle_id} ({len(bundle)} transactions)")
        return bundle_id

    def get_bundle_statuses(self, bundle_ids: Iterable[str]) -> list[BundleStatus | None]:
        """
        Fetch status records for previously submitted bundles.

        Accepts both response shapes seen in the wild: a
        `{"context": ..., "value": [...]}` wrapper and a bare list.

        Args:
            bundle_ids: Bundle ids returned by `send_bundle()`.

        Returns:
            One entry per record returned; None where the Block Engine
            doesn't know the bundle.

        Raises:
            PreconditionError: If no endpoints are configured or no ids given.
            AllEndpointsExhaustedError: If every endpoint failed.
        """
        ids = [str(bundle_id) for bundle_id in bundle_ids]
        if not ids:
            raise PreconditionError("At least one bundle id is required")
        return self._call("getBundleStatuses", lambda _encoding: [ids], _decode_bundle_statuses)

    def wait_for_landed_signatures(self, bundle_id: str, timeout: float) -> list[str]:
        """
        Poll bundle status until its transaction signatures are known.

        Args:
            bundle_id: Bundle id returned by `send_bundle()`.
            timeout: Seconds to keep polling.

        Returns:
            Landed transaction signatures, or an empty list on timeout.
        """
        deadline = self._clock() + timeout
        while self._clock() < deadline:
            statuses = self.get_bundle_statuses([bundle_id])
            if statuses and statuses[0] is not None and statuses[0].landed:
                return list(statuses[0].transactions)
            self._sleep(self.config.landed_poll_interval)
        return []

    def get_tip_floor_lamports(
        self,
        tip_floor_url: str,
        percentile: int = 50,
        use_ema: bool = False,
        min_lamports: int = 0,
        max_lamports: int | None = None,
    ) -> int:
        """
        Get a tip amount from the Block Engine tip floor REST endpoint.

        The request goes through the rate gate of the "other" category.

        Args:
            tip_floor_url: Tip floor URL (returns a JSON array of records).
            percentile: Landed tip percentile: 25, 50, 75, 95 or 99.
            use_ema: Prefer the EMA of the 50th percentile when available.
            min_lamports: Lower clamp.
            max_lamports: Upper clamp, None for no cap.

        Returns:
            Tip in lamports.

        Raises:
            ValueError: If the percentile is unsupported or clamps are inverted.
            TipFloorError: If the request fails or the body is unusable.
        """
        if percentile not in TipFloor.SUPPORTED_PERCENTILES:
            raise ValueError(
                f"Unsupported tip percentile {percentile} (use 25, 50, 75, 95, 99)"
            )
        if max_lamports is not None and min_lamports > max_lamports:
            raise ValueError(f"min_lamports {min_lamports} > max_lamports {max_lamports}")

        self.gates.wait(CallCategory.OTHER)
        try:
            response = requests.get(tip_floor_url, timeout=self.config.request_timeout)
            response.raise_for_status()
            records = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TipFloorError(f"Tip floor request to {tip_floor_url} failed: {e}") from e

        if not isinstance(records, list) or not records:
            raise TipFloorError(f"Tip floor {tip_floor_url} returned empty response")
        try:
            floor = TipFloor.from_dict(records[0])
        except (KeyError, TypeError, ValueError) as e:
            raise TipFloorError(f"Tip floor {tip_floor_url} returned invalid record: {e}") from e

        lamports = max(floor.lamports(percentile, use_ema), min_lamports)
        if max_lamports is not None:
            lamports = min(lamports, max_lamports)
        return lamports

    # ------------------------------------------------------------------
    # Endpoint fallback
    # ------------------------------------------------------------------

    def _call(
        self,
        method: str,
        build_params: Callable[[Encoding], list[Any]],
        decode: Callable[[Any], Any],
        encoded_payload: bool = False,
    ) -> Any:
        if not self._endpoints:
            raise PreconditionError("No Block Engine endpoints configured")

        category = CallCategory.for_method(method)
        last_failure: RpcOutcome | None = None
        for index, endpoint in enumerate(self._endpoints, start=1):
            outcome = self._call_endpoint(
                endpoint, method, category, build_params, decode, encoded_payload
            )
            if outcome.ok:
                return outcome.result

            last_failure = outcome
            if index < len(self._endpoints):
                logger.warning(f"{method}: falling back to next endpoint ({outcome.describe()})")
            else:
                logger.error(f"{method}: all endpoints failed ({outcome.describe()})")

        raise AllEndpointsExhaustedError(method, last_failure, len(self._endpoints))

    def _call_endpoint(
        self,
        endpoint: str,
        method: str,
        category: CallCategory,
        build_params: Callable[[Encoding], list[Any]],
        decode: Callable[[Any], Any],
        encoded_payload: bool,
    ) -> RpcOutcome:
        """Run one operation against one endpoint, including encoding fallback."""
        encoding = Encoding.BASE64
        while True:
            body = self._build_request(method, build_params(encoding))
            outcome = self._post_with_retry(endpoint, body, category, encoded_payload)
            if outcome.ok:
                return _decode_outcome(outcome, decode)

            fallback = None
            if outcome.kind is FailureKind.ENCODING_REJECTED:
                fallback = next_encoding(encoding)
            if fallback is None:
                return outcome

            logger.info(
                f"{method}: {endpoint} could not decode {encoding.value} payload, "
                f"retrying as {fallback.value}"
            )
            encoding = fallback

    def _build_request(self, method: str, params: list[Any]) -> dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }

    # ------------------------------------------------------------------
    # Retry engine
    # ------------------------------------------------------------------

    def _post_with_retry(
        self,
        endpoint: str,
        body: dict[str, Any],
        category: CallCategory,
        encoded_payload: bool,
    ) -> RpcOutcome:
        """
        POST to one endpoint, retrying transient failures with backoff.

        Every attempt waits on the category's rate gate first. Returns the
        first non-transient outcome, or the last transient one once
        `config.max_attempts` attempts have been made.
        """
        backoff = ExponentialBackoff(self.config.backoff_base, self.config.max_attempts)
        attempt = 0
        while True:
            attempt += 1
            self.gates.wait(category)
            outcome = replace(self._post_once(endpoint, body, encoded_payload), attempts=attempt)
            if outcome.ok or not outcome.is_transient or backoff.exhausted(attempt):
                return outcome

            delay = backoff.next_delay(outcome.retry_after)
            logger.warning(
                f"{body['method']} attempt {attempt}/{self.config.max_attempts} to {endpoint} "
                f"failed ({outcome.kind.value}: {outcome.message}), retrying in {delay:.2f}s"
            )
            self._sleep(delay)

    def _post_once(self, endpoint: str, body: dict[str, Any], encoded_payload: bool) -> RpcOutcome:
        """Make one HTTP attempt and classify what came back."""
        timeout = self.config.request_timeout
        try:
            response = self._post(endpoint, body)
        except FuturesTimeout:
            # the abandoned worker may still deliver the request
            logger.warning(
                f"{body['method']} to {endpoint} abandoned after {timeout}s, "
                f"the request may still reach the endpoint"
            )
            return RpcOutcome.failure(
                FailureKind.TRANSIENT_NETWORK,
                f"Timeout: {endpoint} did not respond in {timeout}s",
                endpoint=endpoint,
            )
        except requests.Timeout as e:
            return RpcOutcome.failure(
                FailureKind.TRANSIENT_NETWORK, f"Timeout: {e}", endpoint=endpoint
            )
        except requests.ConnectionError as e:
            kind = (
                FailureKind.ENDPOINT_FATAL
                if _is_connection_refused(e)
                else FailureKind.TRANSIENT_NETWORK
            )
            return RpcOutcome.failure(kind, f"Connection error: {e}", endpoint=endpoint)
        except requests.RequestException as e:
            return RpcOutcome.failure(
                FailureKind.ENDPOINT_FATAL, f"{type(e).__name__}: {e}", endpoint=endpoint
            )

        return classify_response(response, endpoint, encoded_payload)

    def _post(self, endpoint: str, body: dict[str, Any]) -> requests.Response:
        """POST with a hard deadline, on top of requests' own socket timeout."""
        timeout = self.config.request_timeout

        def _send() -> requests.Response:
            return requests.post(endpoint, json=body, timeout=timeout)

        pool = ThreadPoolExecutor(max_workers=1)
        future = pool.submit(_send)
        try:
            return future.result(timeout=timeout)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)


# ----------------------------------------------------------------------
# Response classification and decoding
# ----------------------------------------------------------------------


def classify_response(
    response: requests.Response, endpoint: str, encoded_payload: bool = False
) -> RpcOutcome:
    """
    Classify an HTTP response to a JSON-RPC call.

    - 429 and 5xx are transient (with `Retry-After` if present)
    - a decode failure of the submitted payload is an encoding rejection,
      but only when the request carried an encoded payload
    - other 4xx, JSON-RPC errors and malformed bodies are endpoint-fatal

    Args:
        response: HTTP response.
        endpoint: URL the request was sent to.
        encoded_payload: Whether the request carried encoded transactions.

    Returns:
        Success outcome with the raw `result`, or a classified failure.
    """
    status = response.status_code
    text = response.text or ""
    context = {"endpoint": endpoint, "status_code": status}

    if status == 429 or status >= 500:
        return RpcOutcome.failure(
            FailureKind.TRANSIENT_REMOTE,
            f"HTTP {status}: {text[:MAX_ERROR_BODY]}",
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
            **context,
        )

    try:
        payload = response.json()
    except ValueError:
        payload = None
    rpc_error = _rpc_error(payload)

    if not 200 <= status < 300:
        message = rpc_error[1] if rpc_error else text[:MAX_ERROR_BODY]
        kind = FailureKind.ENDPOINT_FATAL
        if encoded_payload and (is_encoding_rejection(message) or is_encoding_rejection(text)):
            kind = FailureKind.ENCODING_REJECTED
        return RpcOutcome.failure(
            kind,
            f"HTTP {status}: {message}",
            rpc_error_code=rpc_error[0] if rpc_error else None,
            **context,
        )

    if not isinstance(payload, dict):
        return RpcOutcome.failure(
            FailureKind.ENDPOINT_FATAL,
            f"Malformed JSON-RPC response: {text[:MAX_ERROR_BODY]}",
            **context,
        )

    if rpc_error:
        code, message = rpc_error
        kind = FailureKind.ENDPOINT_FATAL
        if encoded_payload and is_encoding_rejection(message):
            kind = FailureKind.ENCODING_REJECTED
        return RpcOutcome.failure(
            kind, f"JSON-RPC error {code}: {message}", rpc_error_code=code, **context
        )

    if "result" not in payload:
        return RpcOutcome.failure(
            FailureKind.ENDPOINT_FATAL,
            f"JSON-RPC response has neither result nor error: {text[:MAX_ERROR_BODY]}",
            **context,
        )

    return RpcOutcome.success(payload["result"], endpoint, status_code=status)


def _rpc_error(payload: Any) -> tuple[int | None, str] | None:
    """Extract `(code, message)` from a JSON-RPC error object, if any."""
    if not isinstance(payload, dict) or payload.get("error") is None:
        return None
    error = payload["error"]
    if not isinstance(error, dict):
        return None, str(error)
    code = error.get("code")
    message = str(error.get("message", ""))
    if error.get("data") is not None:
        message = f"{message} ({error['data']})"
    return (code if isinstance(code, int) else None), message


def _is_connection_refused(error: BaseException) -> bool:
    """Walk the exception chain looking for a refused connection."""
    seen: set[int] = set()
    pending: list[Any] = [error]
    while pending:
        current = pending.pop()
        if not isinstance(current, BaseException) or id(current) in seen:
            continue
        seen.add(id(current))
        if isinstance(current, ConnectionRefusedError):
            return True
        pending.extend(current.args)
        pending.extend([current.__cause__, current.__context__, getattr(current, "reason", None)])
    return "connection refused" in str(error).lower()


def _decode_outcome(outcome: RpcOutcome, decode: Callable[[Any], Any]) -> RpcOutcome:
    try:
        return replace(outcome, result=decode(outcome.result))
    except (KeyError, TypeError, ValueError) as e:
        return RpcOutcome.failure(
            FailureKind.ENDPOINT_FATAL,
            f"Unexpected result: {e}",
            endpoint=outcome.endpoint,
            status_code=outcome.status_code,
            attempts=outcome.attempts,
        )


def _decode_tip_accounts(result: Any) -> list[str]:
    if not isinstance(result, list) or not all(isinstance(item, str) for item in result):
        raise ValueError(f"getTipAccounts result must be a list of strings, got {result!r}")
    return list(result)


def _decode_bundle_id(result: Any) -> str:
    if not isinstance(result, str) or not result:
        raise ValueError(f"sendBundle result must be a bundle id string, got {result!r}")
    return result


def _decode_bundle_statuses(result: Any) -> list[BundleStatus | None]:
    if isinstance(result, dict):
        records = result.get("value") or []
    else:
        records = result
    if not isinstance(records, list):
        raise ValueError(f"Unrecognized getBundleStatuses result: {result!r}")
    return [None if record is None else BundleStatus.from_dict(record) for record in records]
