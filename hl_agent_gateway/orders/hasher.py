"""
Action hash: Keccak-256 over encoded action, nonce and vault qualifier.

    keccak( encoded_action || nonce (8 bytes, big-endian) || 0x00 )
    keccak( encoded_action || nonce (8 bytes, big-endian) || 0x01 || vault (20 bytes) )

The flag byte is always present; an absent vault is a single zero byte.
"""

import time
from typing import Optional

from eth_utils import is_hex_address, keccak, to_bytes

from hl_agent_gateway.utils.exceptions import EncodingError

NONCE_BYTES = 8
ADDRESS_BYTES = 20
NO_VAULT_FLAG = b"\x00"
VAULT_FLAG = b"\x01"


def get_timestamp_ms() -> int:
    """Milliseconds since epoch; captured once per action and used as its nonce."""
    return int(time.time() * 1000)


def address_to_bytes(address: str) -> bytes:
    """20 raw bytes of a 0x-prefixed hex address (checksum case is ignored)."""
    if not isinstance(address, str) or not is_hex_address(address):
        raise EncodingError(f"Invalid vault address: {address!r}")
    return to_bytes(hexstr=address)


def action_hash(encoded_action: bytes, nonce: int, vault_address: Optional[str] = None) -> bytes:
    """
    Compute the 32-byte action hash the agent signature authorizes.

    Args:
        encoded_action: Output of ``encoder.encode``
        nonce: Millisecond timestamp nonce (unsigned 64-bit)
        vault_address: Optional sub-account / vault the agent acts for

    Raises:
        EncodingError: Nonce out of range or malformed vault address
    """
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        raise EncodingError(f"Nonce must be an integer, got {nonce!r}")
    try:
        nonce_bytes = nonce.to_bytes(NONCE_BYTES, "big")
    except OverflowError:
        raise EncodingError(f"Nonce does not fit in 8 unsigned bytes: {nonce}")

    data = bytes(encoded_action) + nonce_bytes
    if vault_address is None:
        data += NO_VAULT_FLAG
    else:
        data += VAULT_FLAG + address_to_bytes(vault_address)
    return keccak(data)
