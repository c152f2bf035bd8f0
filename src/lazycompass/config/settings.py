"""Settings models for lazycompass.

Uses Pydantic v2 BaseSettings. Values come only from the merged TOML tiers
passed in by the loader; the process environment is consulted solely
through ${VAR} placeholders, never as an implicit override.
"""

from typing import TYPE_CHECKING, Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, StrictInt
from pydantic_core import PydanticCustomError
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from pydantic_settings.sources import PydanticBaseSettingsSource

PositiveInt = Annotated[StrictInt, Field(gt=0)]


def _require_text(value: str) -> str:
    if not value.strip():
        raise PydanticCustomError("missing_required", "must not be empty")
    return value


RequiredText = Annotated[str, AfterValidator(_require_text)]


class ConnectionSpec(BaseModel):
    """A named MongoDB connection."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: RequiredText
    uri: RequiredText
    default_database: str | None = None


class ThemeConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = "classic"


class LoggingConfig(BaseModel):
    """Log output settings."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    level: str = "info"
    file: str = "lazycompass.log"
    max_size_mb: PositiveInt = 10
    max_backups: PositiveInt = 3

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


class TimeoutConfig(BaseModel):
    """Timeouts handed to the database driver, in milliseconds."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    connect_ms: PositiveInt = 10_000
    query_ms: PositiveInt = 30_000


class Config(BaseSettings):
    """Effective configuration for one run.

    Instances are immutable snapshots. A reload builds a new instance rather
    than changing fields on an existing one.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        extra="ignore",  # Ignore unknown keys in TOML files
    )

    read_only: StrictBool = Field(
        default=True,
        description="Block inserts, updates, deletes, and local writes",
    )

    allow_pipeline_writes: StrictBool = Field(
        default=False,
        description="Allow $out and $merge stages when writes are enabled",
    )

    allow_insecure: StrictBool = Field(
        default=False,
        description="Silence warnings for connections without TLS or auth",
    )

    connections: tuple[ConnectionSpec, ...] = ()
    theme: ThemeConfig = ThemeConfig()
    logging: LoggingConfig = LoggingConfig()
    timeouts: TimeoutConfig = TimeoutConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: "PydanticBaseSettingsSource",
        env_settings: "PydanticBaseSettingsSource",
        dotenv_settings: "PydanticBaseSettingsSource",
        file_secret_settings: "PydanticBaseSettingsSource",
    ) -> tuple["PydanticBaseSettingsSource", ...]:
        """Restrict sources to constructor kwargs.

        The loader passes the merged TOML tiers as kwargs, so a
        LAZYCOMPASS_* variable in the environment can never flip a safety
        flag behind the config files' back.
        """
        return (init_settings,)

    def connection_names(self) -> list[str]:
        return [connection.name for connection in self.connections]
