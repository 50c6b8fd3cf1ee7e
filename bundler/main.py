"""
Command line demo for the bundle submission client.

Prints the configured endpoints, fetches tip accounts and, if given a
bundle, submits it and waits briefly for its signatures to land.

Example:
    ```bash
    export JITO_BLOCK_ENGINE_URLS=https://frankfurt.mainnet.block-engine.jito.wtf
    python -m bundler.main
    python -m bundler.main --txs bundle.json  # JSON array of base64 tx bytes
    ```
"""

import argparse
import base64
import binascii
import json
import logging
import os
import sys
from pathlib import Path

from .client import BundleSubmissionClient
from .config import Config, ENV_ENDPOINTS
from .errors import BundleClientError


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

ENV_BUNDLE_TXS = "BUNDLE_TXS_BASE64_JSON"

# Seconds to wait for landed signatures after submitting
LANDED_WAIT_SECONDS = 2.0


def load_bundle(raw: str) -> list[bytes]:
    """
    Decode a JSON array of base64 transaction strings.

    Raises:
        ValueError: If the JSON or any base64 string is invalid.
    """
    items = json.loads(raw)
    if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
        raise ValueError("Bundle must be a JSON array of base64 strings")
    try:
        return [base64.b64decode(item, validate=True) for item in items]
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 tx bytes: {e}") from e


def run(config: Config, bundle_json: str | None = None) -> int:
    """
    Run the demo against the configured endpoints.

    Returns:
        Process exit code.
    """
    if not config.is_valid():
        logger.error(f"No endpoints configured. Set {ENV_ENDPOINTS} (comma-separated) or --config")
        return 1

    client = BundleSubmissionClient(config)
    logger.info("Block Engine bundle endpoints:")
    for endpoint in client.endpoints:
        logger.info(f"  - {endpoint}")

    try:
        tips = client.get_tip_accounts()
        logger.info(f"getTipAccounts: {len(tips)} accounts (showing up to 5)")
        for tip in tips[:5]:
            logger.info(f"  - {tip}")

        if not bundle_json or not bundle_json.strip():
            return 0

        txs = load_bundle(bundle_json)
        bundle_id = client.send_bundle(txs)
        logger.info(f"sendBundle OK: bundle_id={bundle_id}")

        signatures = client.wait_for_landed_signatures(bundle_id, LANDED_WAIT_SECONDS)
        if signatures:
            logger.info(f"Bundle landed, tx signatures: {signatures}")
        else:
            logger.info(f"No landed signatures observed in {LANDED_WAIT_SECONDS:.0f}s")
    except (BundleClientError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1

    return 0


def main() -> None:
    """Entry point for command line usage."""
    parser = argparse.ArgumentParser(description="Block Engine bundle client")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to JSON config file (default: JITO_* environment variables)",
    )
    parser.add_argument(
        "--txs",
        default=None,
        help=f"Path to JSON array of base64 transactions (default: ${ENV_BUNDLE_TXS})",
    )
    args = parser.parse_args()

    config = Config.load(args.config) if args.config else Config.from_env()
    bundle_json = Path(args.txs).read_text() if args.txs else os.environ.get(ENV_BUNDLE_TXS)
    sys.exit(run(config, bundle_json))


if __name__ == "__main__":
    main()
