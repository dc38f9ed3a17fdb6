import tomllib
from pathlib import Path
from typing import Literal, Self

import tomlkit
from pydantic import (
    BaseModel,
    Field,
    HttpUrl,
    PositiveFloat,
    PositiveInt,
    WebsocketUrl,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from clquote.constants import MULTICALL3_ADDRESS
from clquote.logging import logger
from clquote.types.aliases import ChainId

CONFIG_DIR = Path.home() / ".config" / "clquote"
CONFIG_FILE = CONFIG_DIR / "config.toml"

ARBITRUM_ONE_CHAIN_ID = 42161
DEFAULT_FEE_TIERS = [100, 500, 3000, 10000]


class TrackedPair(BaseModel):
    """
    A token pair kept warm by the background refresher, one pool per configured fee tier.
    """

    token_a: str
    token_b: str


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CLQUOTE_",
        env_nested_delimiter="__",
    )

    rpc: dict[
        ChainId,
        HttpUrl | WebsocketUrl | Path,
    ] = Field(default_factory=dict)
    chain_id: ChainId = ARBITRUM_ONE_CHAIN_ID
    multicall_address: str = MULTICALL3_ADDRESS
    batch_size: PositiveInt = 150
    max_concurrent_batches: PositiveInt = 1
    refresh_interval: PositiveFloat = 60.0
    staleness_threshold: PositiveFloat | None = None
    fee_tiers: list[PositiveInt] = Field(default_factory=lambda: list(DEFAULT_FEE_TIERS))
    pipeline_retries: PositiveInt = 3
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    tracked_pools: list[TrackedPair] = Field(default_factory=list)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment variables override values read from the config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @field_validator("rpc", mode="after")
    def validate_paths(
        cls,  # noqa: N805
        rpc_dict: dict[ChainId, HttpUrl | WebsocketUrl | Path],
    ) -> dict[ChainId, HttpUrl | WebsocketUrl | Path]:
        """
        Validate the endpoints.

        This will convert all file paths to an absolute reference, leaving HTTP and WS URLs as-is.
        """

        return {
            chain_id: endpoint.expanduser().absolute() if isinstance(endpoint, Path) else endpoint
            for chain_id, endpoint in rpc_dict.items()
        }

    @field_validator("fee_tiers", mode="after")
    def validate_fee_tiers(
        cls,  # noqa: N805
        fee_tiers: list[int],
    ) -> list[int]:
        if not fee_tiers:
            msg = "At least one fee tier must be configured."
            raise ValueError(msg)
        return sorted(set(fee_tiers))

    @model_validator(mode="after")
    def validate_staleness_threshold(self) -> Self:
        """
        Default the staleness threshold to twice the refresh interval. A threshold shorter than the
        interval is rejected.
        """

        if self.staleness_threshold is None:
            self.staleness_threshold = 2 * self.refresh_interval
        elif self.staleness_threshold < self.refresh_interval:
            msg = (
                f"staleness_threshold ({self.staleness_threshold}) must not be shorter than "
                f"refresh_interval ({self.refresh_interval})"
            )
            raise ValueError(msg)
        return self


def load_config_from_file(config_path: Path) -> Settings:
    return Settings(
        **tomllib.loads(
            config_path.read_text(),
        ),
    )


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    config_path.write_text(
        tomlkit.dumps(
            config.model_dump(mode="json"),
        ),
    )


if not CONFIG_DIR.exists():
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    logger.info(f"Created a configuration directory at {CONFIG_DIR}.")

if CONFIG_FILE.exists():
    settings = load_config_from_file(CONFIG_FILE)
else:
    settings = Settings()

    save_config_to_file(settings)
    logger.info(f"Created a configuration file at {CONFIG_FILE}.")

logger.setLevel(settings.log_level)
