import json
from pathlib import Path
from typing import Union

from solders.keypair import Keypair

from airdrop_claimer.errors import KeypairError


def load_keypair(path: Union[str, Path]) -> Keypair:
    """Read a Solana CLI keypair file (JSON byte array or ``{"secretKey": [...]}``)."""
    path = Path(path)
    if not path.exists():
        raise KeypairError(f"Failed to read keypair file: {path} does not exist")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = json.load(fh)
    except (OSError, ValueError) as exc:
        raise KeypairError(f"Failed to read keypair file {path}: {exc}") from exc
    if isinstance(raw, list):
        secret = raw
    elif isinstance(raw, dict) and "secretKey" in raw:
        secret = raw["secretKey"]
    else:
        raise KeypairError(f"Unsupported keypair file format in {path}")
    try:
        return Keypair.from_bytes(bytes(secret))
    except Exception as exc:  # noqa: BLE001
        raise KeypairError(f"Failed to parse keypair file {path}: {exc}") from exc
