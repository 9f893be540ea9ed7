from __future__ import annotations

import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.errors import ConfigError

APP_NAME = "cryptoprice"
DEFAULT_PROVIDER = "coingecko"
DEFAULT_CURRENCY = "USD"


class DefaultsSettings(BaseModel):
    currency: str | None = None
    provider: str | None = None


class CoinMarketCapSettings(BaseModel):
    api_key: str | None = None


class AppSettings(BaseSettings):
    """Settings merged from the TOML config file, ``.env`` and the environment.

    ``defaults`` and ``coinmarketcap`` come from the config file;
    ``coinmarketcap_api_key`` is read from ``COINMARKETCAP_API_KEY``.
    """

    defaults: DefaultsSettings = Field(default_factory=DefaultsSettings)
    coinmarketcap: CoinMarketCapSettings = Field(default_factory=CoinMarketCapSettings)
    coinmarketcap_api_key: str | None = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def resolve_api_key(self, cli_value: str | None) -> str | None:
        return cli_value or self.coinmarketcap_api_key or self.coinmarketcap.api_key

    def resolve_currency(self, cli_value: str | None) -> str:
        return (cli_value or self.defaults.currency or DEFAULT_CURRENCY).upper()

    def resolve_provider_id(self, cli_value: str | None) -> str:
        return cli_value or self.defaults.provider or DEFAULT_PROVIDER


def default_config_path() -> Path:
    xdg_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg_home) if xdg_home else Path.home() / ".config"
    return base / APP_NAME / "config.toml"


def load_settings(path: Path | None = None) -> AppSettings:
    """Load settings from ``path`` or the XDG default location.

    A missing default file is fine; a missing explicit file is not.
    """

    config_path = path or default_config_path()
    file_values: dict[str, object] = {}
    if config_path.exists():
        try:
            with config_path.open("rb") as handle:
                file_values = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid config file {config_path}: {exc}") from exc
    elif path is not None:
        raise ConfigError(f"config file {config_path} does not exist")

    try:
        return AppSettings(**file_values)
    except ValidationError as exc:
        raise ConfigError(f"invalid config file {config_path}: {exc}") from exc


__all__ = [
    "APP_NAME",
    "AppSettings",
    "CoinMarketCapSettings",
    "DEFAULT_CURRENCY",
    "DEFAULT_PROVIDER",
    "DefaultsSettings",
    "default_config_path",
    "load_settings",
]
