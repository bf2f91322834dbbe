"""
PKCE (RFC 7636) verifier and S256 challenge generation.
"""

import base64
import hashlib
import os


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def generate_verifier(length: int = 64) -> str:
    """Random code verifier from `length` random bytes, base64url without padding."""
    return _b64url(os.urandom(length))


def generate_challenge(verifier: str) -> str:
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())
