"""Base58 <-> raw 32-byte public key conversion"""
import base58

PUBKEY_SIZE = 32


def decode_pubkey(pubkey: str) -> bytes:
    """Decode a base58 public key, requiring exactly 32 bytes"""
    try:
        decoded = base58.b58decode(pubkey)
    except ValueError as e:
        raise ValueError(f"invalid base58 pubkey {pubkey!r}: {e}") from e
    if len(decoded) != PUBKEY_SIZE:
        raise ValueError(
            f"expected {PUBKEY_SIZE} bytes after base58 decode, got {len(decoded)}"
        )
    return decoded


def encode_pubkey(pubkey: bytes) -> str:
    """Encode raw public key bytes as base58 text"""
    return base58.b58encode(pubkey).decode("ascii")
