"""
Identity verification for the Risk Gateway service.
"""

from .identity import IdentityVerifier, extract_bearer_token

__all__ = [
    "IdentityVerifier",
    "extract_bearer_token",
]
