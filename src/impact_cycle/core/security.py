"""Signature utilities built on EIP-191 personal-message recovery."""
from __future__ import annotations

import re

from eth_account import Account
from eth_account.messages import encode_defunct

_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")


def is_address(value: object) -> bool:
    """Return True if `value` is a 0x-prefixed 20-byte hex address."""
    return isinstance(value, str) and bool(_ADDRESS_RE.match(value))


def recover_signer(message: str, signature_hex: str) -> str:
    """Recover the address that produced `signature_hex` over `message`.

    Raises:
        ValueError: If the signature cannot be decoded or recovered.
    """
    signable = encode_defunct(text=message)
    try:
        return Account.recover_message(signable, signature=signature_hex)
    except Exception as err:
        raise ValueError(f"Unrecoverable signature: {err}") from err


def verify_signature(address: str, message: str, signature_hex: str) -> bool:
    """Verify a personal-message signature.

    Args:
        address: Claimed signer address (any letter case).
        message: Exact text the wallet signed.
        signature_hex: Hex-encoded 65-byte signature.

    Returns:
        True if the signature recovers to `address`; False otherwise.
    """
    if not is_address(address):
        return False
    try:
        recovered = recover_signer(message, signature_hex)
    except ValueError:
        return False
    return recovered.lower() == address.lower()
