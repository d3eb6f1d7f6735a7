"""
HPLM Signing Utilities

Ed25519 signatures over exported audit records.

The integrity hash proves a record is internally consistent; a signature
additionally proves who sealed it. Signatures cover the record's canonical
JSON bytes (integrity_hash included), so editing any field or re-sealing
with a fresh hash both invalidate the signature.

Functions:
- sign_bytes / verify_signature: raw Ed25519 over bytes
- sign_record / verify_record_signature: Ed25519 over an AuditRecord
- generate_ed25519_keypair: key pair for tests and local tooling
"""
from __future__ import annotations

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from .canon import canonical_json_bytes
from .exceptions import SignatureInvalidError
from .models import AuditRecord

__all__ = [
    "sign_bytes",
    "verify_signature",
    "sign_record",
    "verify_record_signature",
    "generate_ed25519_keypair",
]

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def _check_bytes(value: object, name: str, length: int) -> None:
    if not isinstance(value, bytes):
        raise SignatureInvalidError(
            message=f"{name} must be bytes",
            details={"provided_type": type(value).__name__, "expected_type": "bytes"},
        )
    if len(value) != length:
        raise SignatureInvalidError(
            message=f"{name} must be exactly {length} bytes",
            details={"provided_length": len(value), "expected_length": length},
        )


def sign_bytes(private_key: bytes, data: bytes) -> bytes:
    """
    Sign data using Ed25519 and return the 64-byte signature.

    Ed25519 is deterministic: the same key and data always give the same
    signature.

    Raises:
        SignatureInvalidError: If private_key is not a 32-byte seed
    """
    _check_bytes(private_key, "Private key", PRIVATE_KEY_LENGTH)
    try:
        key = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
    except (ValueError, TypeError) as e:
        raise SignatureInvalidError(
            message=f"Invalid private key format: {e}",
            details={"internal_error": type(e).__name__},
        ) from e
    return key.sign(data)


def verify_signature(public_key: bytes, data: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    A wrong signature or tampered data returns False. Only malformed
    inputs raise.

    Raises:
        SignatureInvalidError: If public_key is not 32 bytes or signature
            is not 64 bytes
    """
    _check_bytes(public_key, "Public key", PUBLIC_KEY_LENGTH)
    _check_bytes(signature, "Signature", SIGNATURE_LENGTH)
    try:
        key = ed25519.Ed25519PublicKey.from_public_bytes(public_key)
    except (ValueError, TypeError) as e:
        raise SignatureInvalidError(
            message=f"Invalid public key format: {e}",
            details={"internal_error": type(e).__name__},
        ) from e
    try:
        key.verify(signature, data)
    except InvalidSignature:
        return False
    return True


def sign_record(record: AuditRecord, private_key: bytes) -> bytes:
    """Sign the canonical bytes of a sealed audit record."""
    return sign_bytes(private_key, canonical_json_bytes(record.to_dict()))


def verify_record_signature(record: AuditRecord, public_key: bytes, signature: bytes) -> bool:
    """True if `signature` was made over this exact record."""
    return verify_signature(public_key, canonical_json_bytes(record.to_dict()), signature)


def generate_ed25519_keypair() -> tuple[bytes, bytes]:
    """
    Generate a new Ed25519 key pair.

    Returns:
        (private_key, public_key) as raw 32-byte values
    """
    key = ed25519.Ed25519PrivateKey.generate()
    private_bytes = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return private_bytes, public_bytes
