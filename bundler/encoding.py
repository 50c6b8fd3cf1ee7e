"""
Transaction encodings for `sendBundle`.

Block Engine deployments disagree on how transaction bytes are sent:
some accept base64, many only base58. The client sends base64 first and
falls back to base58 when the remote reports that a transaction could
not be decoded. Deciding what counts as such a report lives in
`is_encoding_rejection` and nowhere else.
"""

import base64

import base58

from .models import Encoding


# Fragments of the Block Engine's decode failure message, e.g.
# "transaction #0 could not be decoded"
ENCODING_REJECTION_MARKERS = (
    "could not be decoded",
    "transaction #0",
)


def encode_transaction(tx: bytes, encoding: Encoding) -> str:
    """
    Encode raw transaction bytes as text.

    Example:
        ```python
        encode_transaction(b"\\x01\\x02", Encoding.BASE64)  # "AQI="
        encode_transaction(b"\\x01\\x02", Encoding.BASE58)  # "5T"
        ```
    """
    if encoding is Encoding.BASE58:
        return base58.b58encode(tx).decode("ascii")
    return base64.b64encode(tx).decode("ascii")


def encode_transactions(txs: tuple[bytes, ...] | list[bytes], encoding: Encoding) -> list[str]:
    return [encode_transaction(tx, encoding) for tx in txs]


def is_encoding_rejection(message: str | None) -> bool:
    """
    Tell whether a remote error message means the payload encoding was rejected.

    Args:
        message: JSON-RPC error message or HTTP error body.

    Returns:
        True if the message matches a known decode failure.
    """
    if not message:
        return False
    lowered = message.lower()
    return any(marker in lowered for marker in ENCODING_REJECTION_MARKERS)


def next_encoding(current: Encoding) -> Encoding | None:
    """Encoding to fall back to after a rejection; only base64 has one."""
    if current is Encoding.BASE64:
        return Encoding.BASE58
    return None
