"""
EIP-712 "Agent" signature over an action hash.

The agent key never signs the action itself: it signs a two-field message
``{source, connectionId}`` whose ``connectionId`` is the action hash, under a
fixed off-chain domain (name "Exchange", chainId 1337, zero verifying
contract). The 65-byte result is split into r, s and v for the envelope.
"""

from typing import Any, Dict, Union

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data
from eth_account.signers.local import LocalAccount

from hl_agent_gateway.orders.models import Signature
from hl_agent_gateway.utils.config import MAINNET_SOURCE, SIGNING_DOMAIN, TESTNET_SOURCE
from hl_agent_gateway.utils.exceptions import SigningError
from hl_agent_gateway.utils.logger import get_component_logger, short_hex

logger = get_component_logger("signer")

SIGNATURE_BYTES = 65
AGENT_TYPES = {
    "Agent": [
        {"name": "source", "type": "string"},
        {"name": "connectionId", "type": "bytes32"},
    ],
    "EIP712Domain": [
        {"name": "name", "type": "string"},
        {"name": "version", "type": "string"},
        {"name": "chainId", "type": "uint256"},
        {"name": "verifyingContract", "type": "address"},
    ],
}

SigningKey = Union[str, bytes, LocalAccount]


def load_agent(signing_key: SigningKey) -> LocalAccount:
    """
    Build the agent account from key material.

    Raises:
        SigningError: Key is empty or malformed (the key is never echoed)
    """
    if isinstance(signing_key, LocalAccount):
        return signing_key
    if not signing_key:
        raise SigningError("Agent key is missing")
    try:
        return Account.from_key(signing_key)
    except Exception:
        # Chained exception dropped: its text may quote the key
        raise SigningError("Agent key is malformed") from None


def agent_message(action_hash: bytes, is_mainnet: bool = True) -> Dict[str, Any]:
    """Full EIP-712 payload for the phantom agent wrapping ``action_hash``."""
    return {
        "domain": dict(SIGNING_DOMAIN),
        "types": AGENT_TYPES,
        "primaryType": "Agent",
        "message": {
            "source": MAINNET_SOURCE if is_mainnet else TESTNET_SOURCE,
            "connectionId": action_hash,
        },
    }


def signable_agent_message(action_hash: bytes, is_mainnet: bool = True) -> SignableMessage:
    if not isinstance(action_hash, (bytes, bytearray)) or len(action_hash) != 32:
        raise SigningError("Action hash must be exactly 32 bytes")
    return encode_typed_data(full_message=agent_message(bytes(action_hash), is_mainnet))


def sign(action_hash: bytes, signing_key: SigningKey, is_mainnet: bool = True) -> Signature:
    """
    Sign an action hash with the agent key.

    Args:
        action_hash: 32-byte output of ``hasher.action_hash``
        signing_key: Hex private key, raw bytes or an eth_account LocalAccount
        is_mainnet: Source tag "a" (mainnet) or "b" (testnet)

    Raises:
        SigningError: Malformed key or hash
    """
    agent = load_agent(signing_key)
    signable = signable_agent_message(action_hash, is_mainnet)
    signed = agent.sign_message(signable)
    signature = split_signature(bytes(signed.signature))
    logger.debug(f"Signed action {short_hex(bytes(action_hash))} as agent {agent.address}")
    return signature


def split_signature(raw: bytes) -> Signature:
    """
    Split a 65-byte signature: r = bytes 0-31, s = bytes 32-63, v = byte 64.

    r and s are 0x-prefixed 64-digit hex; v is 27/28 (0/1 is shifted by 27).
    """
    if len(raw) != SIGNATURE_BYTES:
        raise SigningError(f"Signature must be {SIGNATURE_BYTES} bytes, got {len(raw)}")
    v = raw[64]
    if v < 27:
        v += 27
    return Signature(r="0x" + raw[:32].hex(), s="0x" + raw[32:64].hex(), v=v)


def recover_signer(action_hash: bytes, signature: Signature, is_mainnet: bool = True) -> str:
    """Address that produced ``signature`` over ``action_hash`` (checksummed)."""
    signable = signable_agent_message(action_hash, is_mainnet)
    return Account.recover_message(
        signable,
        vrs=(signature.v, int(signature.r, 16), int(signature.s, 16)),
    )
