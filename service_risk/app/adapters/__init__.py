"""
Adapters package for the Risk Gateway.

Contains HTTP client wrappers for external dependencies (credential store,
trading API). These adapters encapsulate:

- Base URLs and request shapes
- Error handling that maps to shared errors

Keep adapters thin and side-effect free outside of explicit calls. They
never retry; a failed call fails the request.
"""

from .credential_store import CredentialStoreClient
from .trading_client import AuthorizedClient, error_from_text

__all__ = [
    "AuthorizedClient",
    "CredentialStoreClient",
    "error_from_text",
]
