"""
Validation helpers for Solana-shaped inputs.
"""

from typing import Optional

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
U64_MAX = 2**64 - 1


def validate_solana_address(address: Optional[str]) -> bool:
    """
    Validate Solana address format.

    Solana addresses are base58-encoded 32-byte public keys, 32-44
    characters long.

    Args:
        address: Solana address string

    Returns:
        True if valid format, False otherwise

    Examples:
        >>> validate_solana_address("11111111111111111111111111111111")
        True
        >>> validate_solana_address("invalid")
        False
    """
    if not address or not isinstance(address, str):
        return False

    if len(address) < 32 or len(address) > 44:
        return False

    return all(c in BASE58_ALPHABET for c in address)


def validate_u64(value: int) -> bool:
    """
    Check that a value fits an unsigned 64-bit integer.

    Examples:
        >>> validate_u64(0)
        True
        >>> validate_u64(2**64)
        False
    """
    return isinstance(value, int) and not isinstance(value, bool) and (
        0 <= value <= U64_MAX
    )
