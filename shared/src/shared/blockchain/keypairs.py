"""
Keypair and address helpers.

Loads signer keypairs from Solana CLI style JSON files (a JSON array of
64 secret-key bytes) and parses base58 addresses.
"""

import json
from pathlib import Path
from typing import Optional

from solders.keypair import Keypair  # type: ignore
from solders.pubkey import Pubkey  # type: ignore


def load_keypair(keypair_path: str) -> Keypair:
    """
    Load Solana keypair from JSON file.

    Args:
        keypair_path: Path to keypair JSON file (``~`` is expanded)

    Returns:
        Solana Keypair object

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file does not hold a 64-byte secret key

    Examples:
        >>> keypair = load_keypair("~/.config/solana/fee_payer.json")
        >>> print(keypair.pubkey())
    """
    path = Path(keypair_path).expanduser()

    if not path.exists():
        raise FileNotFoundError(f"Keypair not found: {keypair_path}")

    with open(path, "r") as f:
        secret_key = json.load(f)

    if not isinstance(secret_key, list) or len(secret_key) != 64:
        raise ValueError(f"Keypair file is not a 64-byte array: {keypair_path}")

    return Keypair.from_bytes(bytes(secret_key))


def load_optional_keypair(keypair_path: Optional[str]) -> Optional[Keypair]:
    """Load a keypair when a path is configured, otherwise return None."""
    if not keypair_path:
        return None
    return load_keypair(keypair_path)


def parse_pubkey(address: str) -> Pubkey:
    """
    Parse a base58 address into a Pubkey.

    Raises:
        ValueError: If the address is not a valid 32-byte base58 key
    """
    try:
        return Pubkey.from_string(address)
    except Exception as e:
        raise ValueError(f"Invalid Solana address {address!r}: {e}") from e
