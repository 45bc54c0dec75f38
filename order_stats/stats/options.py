"""
Stats Options

Typed snapshot of the persisted settings (API toggle, preload toggle and
time, API key) and the SQL-backed store that loads and saves them. A request
works from one snapshot, so the API toggle and the key are always read
together.
"""

import re
from contextlib import AbstractAsyncContextManager
from datetime import time
from typing import Any, Callable, Dict, Mapping, Optional

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from order_stats.database.models import StoreOption
from order_stats.stats.exceptions import UpstreamDataError

logger = structlog.get_logger(__name__)

PRELOAD_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")
DEFAULT_PRELOAD_TIME = "00:00"

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


class StatsOptions(BaseModel):
    """Settings snapshot"""

    model_config = ConfigDict(frozen=True)

    api_enabled: bool = False
    preload_enabled: bool = False
    preload_time: str = DEFAULT_PRELOAD_TIME
    api_key: str = ""

    @field_validator("api_enabled", "preload_enabled", mode="before")
    @classmethod
    def blank_is_off(cls, v: Any) -> Any:
        if v is None or v == "":
            return False
        return v

    @field_validator("preload_time", mode="before")
    @classmethod
    def validate_preload_time(cls, v: Any) -> str:
        """24-hour HH:MM; blank falls back to midnight"""
        if v is None or (isinstance(v, str) and not v.strip()):
            return DEFAULT_PRELOAD_TIME
        if isinstance(v, time):
            return v.strftime("%H:%M")
        v = str(v).strip()
        if not PRELOAD_TIME_PATTERN.match(v):
            raise ValueError("preload_time must be HH:MM in 24-hour format")
        return v

    @property
    def preload_at(self) -> time:
        hour, minute = self.preload_time.split(":")
        return time(int(hour), int(minute))

    def public_view(self) -> Dict[str, Any]:
        """Options with the API key reduced to its last four characters"""
        data = self.model_dump()
        data["api_key"] = f"...{self.api_key[-4:]}" if self.api_key else ""
        return data


class OptionsUpdate(BaseModel):
    """Partial update accepted by the admin API; the key is only set by the key issuer"""

    model_config = ConfigDict(extra="forbid")

    api_enabled: Optional[bool] = None
    preload_enabled: Optional[bool] = None
    preload_time: Optional[str] = None

    @field_validator("api_enabled", "preload_enabled", "preload_time", mode="before")
    @classmethod
    def reject_null(cls, v: Any) -> Any:
        """Omit a field to leave it unchanged; null is not a value"""
        if v is None:
            raise ValueError("must not be null")
        return v


def _encode(value: Any) -> str:
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


def _snapshot(raw: Mapping[str, str]) -> StatsOptions:
    """Build a snapshot from stored rows, dropping values that do not validate"""
    valid: Dict[str, str] = {}
    for name, value in raw.items():
        try:
            StatsOptions(**{name: value})
        except ValidationError as e:
            logger.warning(
                "Ignoring invalid stored option",
                option=name,
                error=e.errors(include_url=False)[0]["msg"],
            )
            continue
        valid[name] = value
    return StatsOptions(**valid)


class SqlOptionsStore:
    """
    Options persisted one row per name in ``order_stats_options``.

    Example:
        store = SqlOptionsStore(get_db)
        options = await store.load()
        options = await store.save({"preload_enabled": True, "preload_time": "03:30"})
    """

    def __init__(self, session_scope: SessionScope):
        self.session_scope = session_scope

    async def load(self) -> StatsOptions:
        """
        Read every option in one query; missing or invalid rows take their defaults.

        Raises:
            UpstreamDataError: If the options table cannot be read
        """
        try:
            async with self.session_scope() as session:
                result = await session.execute(
                    select(StoreOption.name, StoreOption.value).where(
                        StoreOption.name.in_(list(StatsOptions.model_fields))
                    )
                )
                raw = {name: value for name, value in result.all()}
        except (SQLAlchemyError, OSError) as e:
            raise UpstreamDataError(f"Loading options failed: {e}") from e
        return _snapshot(raw)

    async def save(self, changes: Mapping[str, Any]) -> StatsOptions:
        """
        Validate and persist a set of option changes.

        Returns:
            The options snapshot after the update

        Raises:
            pydantic.ValidationError: If a value is invalid; nothing is written
        """
        unknown = set(changes) - set(StatsOptions.model_fields)
        if unknown:
            raise KeyError(f"Unknown options: {sorted(unknown)}")

        current = await self.load()
        updated = StatsOptions(**{**current.model_dump(), **changes})

        async with self.session_scope() as session:
            for name in changes:
                await session.merge(StoreOption(name=name, value=_encode(getattr(updated, name))))

        logger.info("Options updated", changed=sorted(changes))
        return updated

    async def set(self, name: str, value: Any) -> None:
        """Write a single option"""
        if name not in StatsOptions.model_fields:
            raise KeyError(name)
        async with self.session_scope() as session:
            await session.merge(StoreOption(name=name, value=_encode(value)))
