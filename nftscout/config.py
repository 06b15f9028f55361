"""Immutable runtime configuration built once at startup."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 60.0
DEFAULT_QUEUE_CAPACITY = 4
DEFAULT_DATABASE_URL = "sqlite:///nftscout.db"
DEFAULT_OPENSEA_BASE_URL = "https://api.opensea.io"
DEFAULT_ALCHEMY_BASE_URL = "https://base-mainnet.g.alchemy.com/nft/v3"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ConfigModel(BaseModel):
    """Schema for NFTScout configuration values."""

    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    rpc_url: str
    private_key: str
    gas_limit: int
    poll_interval: float = DEFAULT_POLL_INTERVAL
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    database_url: str = DEFAULT_DATABASE_URL
    opensea_api_key: Optional[str] = None
    opensea_base_url: str = DEFAULT_OPENSEA_BASE_URL
    opensea_chain: str = "base"
    alchemy_api_key: Optional[str] = None
    alchemy_base_url: str = DEFAULT_ALCHEMY_BASE_URL
    alchemy_owner_address: str = ZERO_ADDRESS
    mint_feed_url: Optional[str] = None
    http_timeout: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    @field_validator("rpc_url")
    @classmethod
    def _rpc_url_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://", "ws://", "wss://")):
            raise ValueError("rpc_url must be an http(s) or ws(s) URL")
        return value

    @field_validator("private_key")
    @classmethod
    def _private_key_hex(cls, value: str) -> str:
        body = value[2:] if value.lower().startswith("0x") else value
        if len(body) != 64:
            raise ValueError("private_key must be 32 bytes of hex")
        try:
            int(body, 16)
        except ValueError as exc:
            raise ValueError("private_key must be hex encoded") from exc
        return value

    @field_validator("gas_limit", "queue_capacity")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @field_validator("poll_interval", "http_timeout")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be a positive number of seconds")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    @field_validator(
        "opensea_api_key", "alchemy_api_key", "mint_feed_url", "log_file", mode="before"
    )
    @classmethod
    def _blank_is_unset(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@dataclass(frozen=True)
class ScoutConfig:
    """Runtime configuration passed by reference into every stage constructor."""

    rpc_url: str
    private_key: str
    gas_limit: int
    poll_interval: float = DEFAULT_POLL_INTERVAL
    queue_capacity: int = DEFAULT_QUEUE_CAPACITY
    database_url: str = DEFAULT_DATABASE_URL
    opensea_api_key: Optional[str] = None
    opensea_base_url: str = DEFAULT_OPENSEA_BASE_URL
    opensea_chain: str = "base"
    alchemy_api_key: Optional[str] = None
    alchemy_base_url: str = DEFAULT_ALCHEMY_BASE_URL
    alchemy_owner_address: str = ZERO_ADDRESS
    mint_feed_url: Optional[str] = None
    http_timeout: float = 10.0
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None

    @property
    def demo_collections(self) -> bool:
        return not (self.opensea_api_key or self.alchemy_api_key)

    @property
    def demo_candidates(self) -> bool:
        return not self.mint_feed_url

    def __repr__(self) -> str:
        return (
            f"ScoutConfig(rpc_url={self.rpc_url!r}, gas_limit={self.gas_limit}, "
            f"poll_interval={self.poll_interval}, queue_capacity={self.queue_capacity}, "
            f"database_url={self.database_url!r}, demo_collections={self.demo_collections}, "
            f"demo_candidates={self.demo_candidates})"
        )


_ENV_FIELDS: dict[str, str] = {
    "RPC_URL": "rpc_url",
    "PRIVATE_KEY": "private_key",
    "GAS_LIMIT": "gas_limit",
    "QUEUE_CAPACITY": "queue_capacity",
    "DATABASE_URL": "database_url",
    "OPENSEA_API_KEY": "opensea_api_key",
    "OPENSEA_BASE_URL": "opensea_base_url",
    "OPENSEA_CHAIN": "opensea_chain",
    "ALCHEMY_API_KEY": "alchemy_api_key",
    "ALCHEMY_BASE_URL": "alchemy_base_url",
    "ALCHEMY_OWNER_ADDRESS": "alchemy_owner_address",
    "MINT_FEED_URL": "mint_feed_url",
    "HTTP_TIMEOUT_SEC": "http_timeout",
    "LOG_LEVEL": "log_level",
    "LOG_JSON": "log_json",
    "LOG_FILE": "log_file",
}


def _poll_interval(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_POLL_INTERVAL
    try:
        value = float(raw)
    except ValueError:
        log.warning("Invalid FETCH_DURATION=%r; using default %.0f seconds", raw, DEFAULT_POLL_INTERVAL)
        return DEFAULT_POLL_INTERVAL
    if value <= 0:
        log.warning("Invalid FETCH_DURATION=%r; using default %.0f seconds", raw, DEFAULT_POLL_INTERVAL)
        return DEFAULT_POLL_INTERVAL
    return value


def load_config(env: Mapping[str, str] | None = None) -> ScoutConfig:
    """Build a :class:`ScoutConfig` from ``env`` (defaults to ``os.environ``).

    Raises :class:`ConfigError` when a required variable is missing or a value
    fails validation.
    """

    env_map = os.environ if env is None else env
    data: dict[str, object] = {}
    for var, field_name in _ENV_FIELDS.items():
        value = env_map.get(var)
        # blank means unset: required fields report missing, optional ones keep their default
        if value is None or not value.strip():
            continue
        data[field_name] = value
    data["poll_interval"] = _poll_interval(env_map.get("FETCH_DURATION"))

    try:
        model = ConfigModel(**data)
    except ValidationError as exc:
        problems = ", ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
            for err in exc.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from exc
    return ScoutConfig(**model.model_dump())
