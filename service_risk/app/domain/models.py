"""
Data models shared by the risk gateway layers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


# Keep integral amounts integral on the way back out.
Amount = Union[int, float]


@dataclass(frozen=True)
class DelegatedCredential:
    """Downstream API token plus the base URL it is valid for.

    Lives for a single request. The token is kept out of ``repr`` so it never
    ends up in logs or tracebacks.
    """

    token: str = field(repr=False)
    base_url: str


@dataclass(frozen=True)
class RequestContext:
    """Authenticated request context produced by the authentication step."""

    subject: str
    connection_ref: str
    credential: DelegatedCredential


class _CamelModel(BaseModel):
    """Models exchanged with clients and the trading API use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RiskSettings(_CamelModel):
    """Auto-liquidation settings of one account.

    Fields the trading API returns that are not modelled here are kept as
    extras so they survive caching and are returned to the caller unchanged.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: Optional[int] = None
    daily_loss_auto_liq: Optional[Amount] = None
    daily_profit_auto_liq: Optional[Amount] = None
    weekly_loss_auto_liq: Optional[Amount] = None
    weekly_profit_auto_liq: Optional[Amount] = None
    daily_loss_alert: Optional[Amount] = None
    daily_loss_percentage_alert: Optional[Amount] = None
    margin_percentage_alert: Optional[Amount] = None
    daily_loss_liq_only: Optional[Amount] = None
    daily_loss_percentage_liq_only: Optional[Amount] = None
    margin_percentage_liq_only: Optional[Amount] = None
    daily_loss_percentage_auto_liq: Optional[Amount] = None
    margin_percentage_auto_liq: Optional[Amount] = None
    trailing_max_drawdown: Optional[Amount] = None
    trailing_max_drawdown_limit: Optional[Amount] = None
    trailing_max_drawdown_mode: Optional[Literal["EOD", "RealTime"]] = None
    flatten_timestamp: Optional[str] = None
    do_not_unlock: Optional[bool] = None
    changes_locked: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using wire (camelCase) names, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RiskSettingsUpdate(_CamelModel):
    """Writable risk fields.

    The declared fields are the allow-list: keys outside it are dropped when
    the model is built and ``null`` values are never forwarded downstream.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    daily_loss_auto_liq: Optional[Amount] = None
    daily_profit_auto_liq: Optional[Amount] = None
    weekly_loss_auto_liq: Optional[Amount] = None
    weekly_profit_auto_liq: Optional[Amount] = None
    daily_loss_alert: Optional[Amount] = None
    daily_loss_percentage_alert: Optional[Amount] = None
    margin_percentage_alert: Optional[Amount] = None
    daily_loss_liq_only: Optional[Amount] = None
    daily_loss_percentage_liq_only: Optional[Amount] = None
    margin_percentage_liq_only: Optional[Amount] = None
    daily_loss_percentage_auto_liq: Optional[Amount] = None
    margin_percentage_auto_liq: Optional[Amount] = None
    trailing_max_drawdown: Optional[Amount] = None
    trailing_max_drawdown_limit: Optional[Amount] = None
    trailing_max_drawdown_mode: Optional[Literal["EOD", "RealTime"]] = None

    def fields_to_write(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class RiskSettingsRequest(RiskSettingsUpdate):
    """Body of ``POST /risk/{accountId}``."""

    connection_ref: Optional[str] = None

    def to_update(self) -> RiskSettingsUpdate:
        return RiskSettingsUpdate.model_validate(self.model_dump(exclude={"connection_ref"}))


class DailyLimitsRequest(_CamelModel):
    """Body of ``POST /risk/{accountId}/daily-limits``."""

    connection_ref: Optional[str] = None
    daily_loss_limit: Amount
    daily_profit_target: Amount
    keep_closed: bool = True
