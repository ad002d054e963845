"""
Configuration management for Atlas Station.

Uses Pydantic Settings for environment variable parsing.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelegramConfig(BaseSettings):
    """Telegram bot configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_TELEGRAM_")

    token: Optional[str] = Field(
        default=None,
        description="Telegram Bot API token",
    )
    chat_id: Optional[int] = Field(
        default=None,
        description="The only chat commands are accepted from and notifications go to",
    )
    api_url: str = Field(
        default="https://api.telegram.org",
        description="Bot API base URL",
    )
    poll_timeout: int = Field(
        default=60,
        description="Long polling timeout for getUpdates (seconds)",
    )
    startup_drain: bool = Field(
        default=True,
        description="Skip commands queued while the bot was offline",
    )


class MQTTConfig(BaseSettings):
    """MQTT broker configuration for presence reports and the antenna switch."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_MQTT_")

    host: str = Field(default="localhost", description="MQTT broker host")
    port: int = Field(default=1883, description="MQTT broker port")
    username: Optional[str] = Field(default=None, description="MQTT username")
    password: Optional[str] = Field(default=None, description="MQTT password")
    client_id: str = Field(default="telegram_bot", description="MQTT client identifier")
    presence_topic: str = Field(
        default="flex/discovery",
        description="Topic carrying radio discovery/presence documents",
    )
    antenna_command_topic: str = Field(
        default="ant/cmd",
        description="Topic the antenna switch listens on",
    )
    antenna_result_topic: str = Field(
        default="ant/res",
        description="Topic the antenna switch reports patched paths on",
    )
    reconnect_interval: int = Field(
        default=5,
        description="Seconds between reconnection attempts",
    )
    connect_timeout: float = Field(
        default=5.0,
        description="Seconds startup waits for the first broker connection",
    )


class RotatorConfig(BaseSettings):
    """Rotator controller configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_ROTATOR_")

    main_address: str = Field(
        default="",
        description="Address of the main beam rotator controller",
    )
    loop_address: str = Field(
        default="",
        description="Address of the loop antenna rotator controller",
    )
    main_image: str = Field(
        default="locator_opti.png",
        description="Base picture for the main rotator bearing",
    )
    loop_image: str = Field(
        default="locator_loop.png",
        description="Base picture for the loop rotator bearing",
    )
    poll_interval: float = Field(
        default=2.0,
        description="Seconds between position polls while rotating",
    )
    max_polls: int = Field(
        default=90,
        description="Position polls before a rotation is reported as timed out",
    )


class SwitchConfig(BaseSettings):
    """Relay web switch configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_SWITCH_")

    address: str = Field(default="", description="Address of the relay web switch")
    relay_channel: int = Field(default=1, description="Relay channel for the receiver path")


class DeviceLinkConfig(BaseSettings):
    """HTTP device exchange configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_DEVICE_")

    timeout: float = Field(default=10.0, description="Per-request timeout (seconds)")


class PresenceConfig(BaseSettings):
    """Radio presence tracking configuration."""

    model_config = SettingsConfigDict(env_prefix="ATLAS_STATION_PRESENCE_")

    enabled: bool = Field(default=True, description="Enable presence tracking")
    occupant_field: str = Field(
        default="inuse_ip",
        description="Document field naming the current occupant(s)",
    )
    settle_delay: float = Field(
        default=3.0,
        description="Seconds to wait after a change before switching",
    )
    notify_on_first: bool = Field(
        default=False,
        description="Treat the first report after startup as a transition",
    )


class StationConfig(BaseSettings):
    """Main station configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ATLAS_STATION_",
        env_file=".env",
        extra="ignore",
    )

    asset_dir: Path = Field(
        default=Path("assets"),
        description="Directory holding locator and antenna pictures",
    )
    antenna_list: str = Field(
        default="",
        description="Semicolon separated antenna list shown by /getant",
    )
    flashes_url: str = Field(
        default="http://images.blitzortung.org/Images/image_b_eu.png",
        description="Lightning map image served by /flashes",
    )
    flashes_link: str = Field(
        default="https://www.lightningmaps.org/blitzortung/europe/index.php?lang=en",
        description="Link appended to the /flashes caption",
    )
    log_level: str = Field(default="INFO", description="Log level")

    # Sub-configs
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    mqtt: MQTTConfig = Field(default_factory=MQTTConfig)
    rotator: RotatorConfig = Field(default_factory=RotatorConfig)
    switch: SwitchConfig = Field(default_factory=SwitchConfig)
    device: DeviceLinkConfig = Field(default_factory=DeviceLinkConfig)
    presence: PresenceConfig = Field(default_factory=PresenceConfig)


class ConfigurationError(RuntimeError):
    """Raised when the station cannot start with the given settings."""


def validate_settings(config: StationConfig) -> None:
    """Check the settings the station cannot run without."""
    missing = []
    if not config.telegram.token:
        missing.append("ATLAS_STATION_TELEGRAM_TOKEN")
    if config.telegram.chat_id is None:
        missing.append("ATLAS_STATION_TELEGRAM_CHAT_ID")
    if missing:
        raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")


# Global settings instance
_settings: Optional[StationConfig] = None


def get_settings() -> StationConfig:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = StationConfig()
    return _settings


settings = get_settings()
