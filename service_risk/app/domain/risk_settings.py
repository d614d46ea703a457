"""
Risk settings operations: cached merged reads and allow-listed writes.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pydantic

from shared.errors import DownstreamUnauthorizedError, UpstreamError, ValidationError
from shared.logging import get_logger

from ..adapters.trading_client import AuthorizedClient, error_from_text
from ..caching.settings_cache import SettingsCache
from .models import RiskSettings, RiskSettingsUpdate


OWNER_SETTINGS_PATH = "/userAccountAutoLiq/deps"
PERMISSIONED_SETTINGS_PATH = "/permissionedAccountAutoLiq/deps"
UPDATE_SETTINGS_PATH = "/userAccountAutoLiq/updateuserautoliq"
LIST_SETTINGS_PATH = "/userAccountAutoLiq/list"

_SETTINGS_FIELDS = frozenset(
    field.alias or name for name, field in RiskSettings.model_fields.items()
)


def merge_settings(owner: Dict[str, Any], permissioned: Dict[str, Any]) -> Optional[RiskSettings]:
    """Overlay owner-source fields on permissioned-source fields.

    Owner values win on conflict. A ``null`` owner value does not erase a value
    reported by the permissioned source. Returns ``None`` when neither side
    carries a recognisable record.
    """
    if not _is_record(owner) and not _is_record(permissioned):
        return None

    merged = dict(permissioned)
    merged.update({key: value for key, value in owner.items() if value is not None})
    return parse_settings(merged)


def parse_settings(record: Dict[str, Any]) -> RiskSettings:
    """Build ``RiskSettings`` from a downstream record, as an ``UpstreamError`` when it does not fit."""
    try:
        return RiskSettings.model_validate(record)
    except pydantic.ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error.get("loc", ())) or "record"
        raise UpstreamError(
            f"Malformed auto-liq record from trading API: {field}: {error.get('msg', 'invalid value')}",
            details={"record_id": record.get("id")},
        ) from exc


def _is_record(record: Dict[str, Any]) -> bool:
    return any(record.get(key) is not None for key in _SETTINGS_FIELDS)


def _first_record(payload: Any) -> Dict[str, Any]:
    """The deps endpoints answer with a list; use its first entry."""
    if isinstance(payload, list):
        return payload[0] if payload and isinstance(payload[0], dict) else {}
    if isinstance(payload, dict):
        if payload.get("errorText"):
            raise error_from_text(str(payload["errorText"]))
        return payload
    return {}


class RiskSettingsGateway:
    """Reads and writes auto-liquidation settings through an authorized client."""

    def __init__(self, cache: SettingsCache):
        self.cache = cache
        self.logger = get_logger("risk.settings")

    async def get_settings(self, client: AuthorizedClient, account_id: int) -> Tuple[Optional[RiskSettings], bool]:
        """Return ``(settings, cached)`` for the account.

        ``settings`` is ``None`` when neither the owner nor the permissioned
        source has a record for the account.
        """
        cached = self.cache.get(account_id)
        if cached is not None:
            self.logger.debug("Risk settings cache hit", account_id=account_id)
            return cached, True

        # Both lookups run to completion before any failure is reported.
        results = await asyncio.gather(
            self._fetch_source(client, OWNER_SETTINGS_PATH, account_id),
            self._fetch_source(client, PERMISSIONED_SETTINGS_PATH, account_id),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        owner, permissioned = results

        if owner is None and permissioned is None:
            self.logger.warning("Both risk settings sources denied", account_id=account_id)

        settings = merge_settings(owner or {}, permissioned or {})
        if settings is not None:
            self.cache.put(account_id, settings)
            self.logger.debug("Risk settings cached", account_id=account_id)
        return settings, False

    async def set_settings(
        self,
        client: AuthorizedClient,
        account_id: int,
        update: RiskSettingsUpdate,
    ) -> RiskSettings:
        """Write the allow-listed fields of ``update`` and refresh the cache."""
        fields = update.fields_to_write()
        if not fields:
            raise ValidationError(
                "No valid risk parameters provided. Include at least one of: "
                "dailyLossAutoLiq, dailyProfitAutoLiq, etc."
            )
        return await self._write(client, account_id, fields)

    async def set_daily_limits(
        self,
        client: AuthorizedClient,
        account_id: int,
        daily_loss_limit: float,
        daily_profit_target: float,
        keep_closed: bool = True,
    ) -> RiskSettings:
        """Set the daily loss limit and profit target; the account stays closed once either is hit."""
        self.logger.info(
            "Setting daily limits",
            account_id=account_id,
            daily_loss=daily_loss_limit,
            daily_profit=daily_profit_target,
            do_not_unlock=keep_closed,
        )
        return await self._write(
            client,
            account_id,
            {
                "dailyLossAutoLiq": daily_loss_limit,
                "dailyProfitAutoLiq": daily_profit_target,
                "doNotUnlock": keep_closed,
            },
        )

    async def list_all_settings(self, client: AuthorizedClient) -> List[RiskSettings]:
        """List every auto-liq record visible to the credential."""
        payload = await client.get(LIST_SETTINGS_PATH)
        if not isinstance(payload, list):
            raise UpstreamError("Unexpected auto-liq list response")
        return [parse_settings(item) for item in payload if isinstance(item, dict)]

    async def _fetch_source(
        self,
        client: AuthorizedClient,
        path: str,
        account_id: int,
    ) -> Optional[Dict[str, Any]]:
        """Fetch one settings source; ``None`` means the caller lacks that role."""
        try:
            payload = await client.get(path, {"masterid": str(account_id)})
            return _first_record(payload)
        except DownstreamUnauthorizedError:
            self.logger.info("Risk settings source denied", path=path, account_id=account_id)
            return None

    async def _write(self, client: AuthorizedClient, account_id: int, fields: Dict[str, Any]) -> RiskSettings:
        body = {"accountId": account_id, **fields}
        result = await client.post(UPDATE_SETTINGS_PATH, body)
        # The downstream write may already be applied, so the old entry is stale from here on.
        self.cache.invalidate(account_id)
        if not isinstance(result, dict):
            raise UpstreamError(f"Unexpected response while setting auto-liq for account {account_id}")

        error_text = result.get("errorText")
        if error_text:
            error = error_from_text(str(error_text))
            if isinstance(error, UpstreamError):
                error = UpstreamError(
                    f"Failed to set auto-liq for account {account_id}: {error_text}",
                    details=error.details,
                )
            raise error

        # Owners get the record back as userAccountAutoLiq, permissioned users
        # as permissionedAccountAutoLiq.
        record = result.get("userAccountAutoLiq") or result.get("permissionedAccountAutoLiq")
        if not isinstance(record, dict):
            raise UpstreamError(f"No auto-liq entity returned for account {account_id}")

        settings = parse_settings(record)
        self.cache.replace(account_id, settings)
        self.logger.info("Risk settings updated", account_id=account_id, fields=sorted(fields))
        return settings
