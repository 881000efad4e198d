"""Configuration schema using Pydantic.

Persisted to ~/.swaprpc/config.json (camelCase keys); environment variables
prefixed with ``SWAPRPC_`` override file values, e.g. ``SWAPRPC_MESSENGER__KEYSPACE=true``.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MessengerConfig(BaseModel):
    """Socket, directory and timing settings for a Messenger."""
    server_host: str = "connect.airswap-api.com"  # "wss://" is assumed unless a scheme is given
    indexer_address: str = "0x0000000000000000000000000000000000000000"
    keyspace: bool = False  # Alternate keyspace/encryption mode (use_pgp)
    call_timeout: float = Field(default=12.0, gt=0)  # Seconds before a call is rejected with code -1
    heartbeat_interval: float = Field(default=30.0, gt=0)
    reconnect: bool = True
    reconnect_delay: float = Field(default=10.0, ge=0)
    private_key_path: str = "~/.swaprpc/key"  # Hex secp256k1 key used by the CLI signer


class LoggingConfig(BaseModel):
    """Log sinks for the CLI."""
    level: str = "INFO"
    file: bool = True  # Rotating file under ~/.swaprpc/logs


class Config(BaseSettings):
    """Root configuration for swaprpc."""
    model_config = SettingsConfigDict(env_prefix="SWAPRPC_", env_nested_delimiter="__")

    messenger: MessengerConfig = Field(default_factory=MessengerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment beats the config file, which arrives as init kwargs.
        return env_settings, init_settings, dotenv_settings, file_secret_settings
