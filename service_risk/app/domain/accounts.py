"""
Account listing pass-through.
"""

from typing import Any, Dict, List

from shared.errors import UpstreamError

from ..adapters.trading_client import AuthorizedClient


ACCOUNT_LIST_PATH = "/account/list"


async def list_accounts(client: AuthorizedClient) -> List[Dict[str, Any]]:
    """Return the trading accounts visible to the client's credential."""
    payload = await client.get(ACCOUNT_LIST_PATH)
    if not isinstance(payload, list):
        raise UpstreamError("Unexpected account list response")
    return payload
