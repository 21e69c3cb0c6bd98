"""Application configuration for castline.

Settings are read from init kwargs, environment variables, CLI flags and
finally a YAML file whose path is itself a setting (``CONFIG_FILE``). The YAML
file is where the ``feeds`` mapping lives.
"""

from datetime import timedelta
import logging
from pathlib import Path
import secrets
from typing import Any, Literal, cast

from pydantic import Field, field_validator
from pydantic.fields import FieldInfo
from pydantic_core import PydanticUndefined
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
import yaml

from ..exceptions import ConfigLoadError
from .feed_config import FeedConfig
from .types import MemorySize, parse_duration

logger = logging.getLogger(__name__)


class YamlFileFromFieldSource(PydanticBaseSettingsSource):
    """Settings source that reads a YAML file named by the ``config_file`` field.

    Must run after the sources that can set ``config_file`` (init, env, CLI).
    A missing file is treated as an empty config so the service can run from
    environment variables alone.

    Attributes:
        yaml_file_encoding: Encoding used to read the file.
        yaml_data: Parsed contents of the file.
    """

    def __init__(
        self,
        settings_cls: type[BaseSettings],
        yaml_file_encoding: str | None = None,
    ):
        super().__init__(settings_cls)
        self.yaml_file_encoding = yaml_file_encoding or "utf-8"
        self.yaml_data: dict[str, Any] = {}

    def _resolve_config_path(self) -> Path | None:
        field_info = self.settings_cls.model_fields["config_file"]
        value = self.current_state.get("config_file")
        if value in (None, PydanticUndefined) and isinstance(
            field_info.validation_alias, str
        ):
            value = self.current_state.get(field_info.validation_alias)
        if value in (None, PydanticUndefined):
            value = field_info.get_default()

        match value:
            case None:
                return None
            case Path():
                return value.expanduser()
            case str() as s if s.strip():
                return Path(s).expanduser()
            case str():
                return None
            case _:
                raise TypeError(
                    "Field 'config_file' must resolve to a Path or string, "
                    f"received type '{type(value).__name__}'"
                )

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        with path.open(encoding=self.yaml_file_encoding) as f:
            loaded = yaml.safe_load(f)
        match loaded:
            case None:
                logger.info("YAML configuration file is empty.", extra={"file_path": str(path)})
                return {}
            case dict():
                return cast(dict[str, Any], loaded)
            case _:
                raise TypeError(
                    f"Invalid YAML config format: expected mapping, got {type(loaded).__name__}"
                )

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        return self.yaml_data.get(field_name), field_name, self.field_is_complex(field)

    def __call__(self) -> dict[str, Any]:
        try:
            path = self._resolve_config_path()
        except TypeError as e:
            raise ConfigLoadError("Failed to resolve YAML configuration file path.") from e

        if path is None or not path.exists():
            logger.debug(
                "No YAML configuration file found; skipping.",
                extra={"file_path": str(path) if path else None},
            )
            self.yaml_data = {}
            return {}

        try:
            self.yaml_data = self._read_yaml(path)
        except (TypeError, OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(
                "Failed to load or parse YAML configuration file.",
                config_file=str(path),
            ) from e

        logger.debug("Loaded YAML configuration.", extra={"file_path": str(path)})
        return self.yaml_data.copy()


class AppSettings(BaseSettings):
    """Global settings and feed configurations.

    Attributes:
        log_format: Format for application logs (human or json).
        log_level: Logging level for the castline logger.
        log_include_stacktrace: Include full stack traces in error logs.
        base_url: Externally reachable base URL, used by the HTTP dispatcher.
        data_dir: Root directory for the database and downloaded images.
        server_host: Host address for the HTTP server.
        server_port: Port for the HTTP server.
        config_file: Path to the YAML config file.
        alembic_config: Path to the Alembic configuration file.
        worker_secret: Shared secret used to sign worker nonces.
        dispatch_mode: How queue workers are woken (in-process or over HTTP).
        queue_lock_ttl: Lifetime of the queue process lock.
        queue_pause: Pause taken after each handled task.
        feed_check_interval: Interval of the scheduled per-feed staleness check.
        queue_tick: Interval of the scheduled queue dispatch.
        memory_limit: Memory ceiling; workers back off at 90% of it.
        fetch_timeout: Timeout for feed requests, in seconds.
        check_cache_headers: Send conditional request headers when refetching.
        refresh_interval: Upper bound on reuse of fetched feed data.
        keep_old: Keep episodes that disappear from a feed.
        img_save: Initial value of the image download feature flag.
        feeds: Configured podcast feeds, keyed by feed id.
    """

    log_format: Literal["human", "json"] = Field(
        default="json",
        validation_alias="LOG_FORMAT",
        description="Format for application logs ('human' or 'json').",
    )
    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level for the application (e.g., DEBUG, INFO). Case-insensitive.",
    )
    log_include_stacktrace: bool = Field(
        default=False,
        validation_alias="LOG_INCLUDE_STACKTRACE",
        description="Include full stack traces in error logs (true/false).",
    )
    base_url: str = Field(
        default="http://localhost:8025",
        validation_alias="BASE_URL",
        description="Base URL the worker endpoint is reachable at.",
    )
    data_dir: Path = Field(
        default=Path("/data"),
        validation_alias="DATA_DIR",
        description="Root directory for application data (database, images).",
    )

    # Server configuration
    server_host: str = Field(
        default="0.0.0.0",
        validation_alias="SERVER_HOST",
        description="Host address for the HTTP server to bind to.",
    )
    server_port: int = Field(
        default=8025,
        validation_alias="SERVER_PORT",
        description="Port number for the HTTP server to listen on.",
    )

    config_file: Path = Field(
        default=Path("/config/castline.yaml"),
        validation_alias="CONFIG_FILE",
        description="Path to the YAML config file.",
    )
    alembic_config: Path = Field(
        default=Path("alembic.ini"),
        validation_alias="ALEMBIC_CONFIG",
        description="Path to the Alembic configuration used for migrations.",
    )

    # Background queue
    worker_secret: str = Field(
        default_factory=lambda: secrets.token_hex(16),
        validation_alias="WORKER_SECRET",
        description="Secret used to sign worker nonces. Random per process when unset.",
    )
    dispatch_mode: Literal["local", "http"] = Field(
        default="local",
        validation_alias="DISPATCH_MODE",
        description="Wake workers in-process ('local') or by POSTing to the worker endpoint ('http').",
    )
    queue_lock_ttl: timedelta = Field(
        default=timedelta(seconds=30),
        validation_alias="QUEUE_LOCK_TTL",
        description="Lifetime of the queue lock; an abandoned lock expires after this.",
    )
    queue_pause: timedelta = Field(
        default=timedelta(seconds=5),
        validation_alias="QUEUE_PAUSE",
        description="Pause after each handled task before the lock is released.",
    )
    feed_check_interval: timedelta = Field(
        default=timedelta(minutes=30),
        validation_alias="FEED_CHECK_INTERVAL",
        description="How often each enabled feed is checked for staleness.",
    )
    queue_tick: timedelta = Field(
        default=timedelta(minutes=1),
        validation_alias="QUEUE_TICK",
        description="Interval of the scheduled queue dispatch.",
    )
    memory_limit: int = Field(
        default=MemorySize("1G").total_bytes,
        validation_alias="MEMORY_LIMIT",
        description="Memory ceiling in bytes; accepts sizes such as '512M', or -1 for unlimited.",
    )

    # Feed ingestion
    fetch_timeout: float = Field(
        default=10.0,
        gt=0,
        validation_alias="FETCH_TIMEOUT",
        description="Timeout for feed requests, in seconds.",
    )
    check_cache_headers: bool = Field(
        default=True,
        validation_alias="CHECK_CACHE_HEADERS",
        description="Send If-None-Match / If-Modified-Since when refetching feeds.",
    )
    refresh_interval: timedelta = Field(
        default=timedelta(days=1),
        validation_alias="REFRESH_INTERVAL",
        description="Maximum time fetched feed data is reused before refetching.",
    )
    keep_old: bool = Field(
        default=False,
        validation_alias="KEEP_OLD_EPISODES",
        description="Keep episodes that have been removed from the feed.",
    )
    img_save: bool = Field(
        default=False,
        validation_alias="IMG_SAVE",
        description="Download featured images locally. Disabled automatically after repeated failures.",
    )

    feeds: dict[str, FeedConfig] = Field(
        default_factory=dict[str, FeedConfig],
        description="Configuration for all podcast feeds. Read from the YAML file.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_nested_delimiter="__",
        yaml_file_encoding="utf-8",
        cli_parse_args=True,
        cli_ignore_unknown_args=True,
        cli_kebab_case=True,
        extra="ignore",
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / "db" / "castline.db"

    @property
    def images_dir(self) -> Path:
        return self.data_dir / "images"

    def feed_for_url(self, url: str) -> FeedConfig | None:
        """Find the configured feed whose URL or alias matches ``url``."""
        for feed in self.feeds.values():
            if url == feed.url or url in feed.aliases:
                return feed
        return None

    @field_validator(
        "queue_lock_ttl",
        "queue_pause",
        "queue_tick",
        "feed_check_interval",
        "refresh_interval",
        mode="before",
    )
    @classmethod
    def parse_durations(cls, v: Any) -> timedelta:
        """Parse duration settings given as strings or seconds.

        Raises:
            ValueError: If the value is empty or malformed.
        """
        parsed = parse_duration(v, "duration setting")
        if parsed is None:
            raise ValueError("duration settings cannot be empty")
        return parsed

    @field_validator("memory_limit", mode="before")
    @classmethod
    def parse_memory_limit(cls, v: Any) -> int:
        """Convert a shorthand memory size into bytes.

        Raises:
            TypeError: If the value is not a string, integer or MemorySize.
        """
        match v:
            case MemorySize():
                return v.total_bytes
            case bool():
                raise TypeError("memory_limit must be a size, got bool")
            case str() | int():
                return MemorySize(v).total_bytes
            case _:
                raise TypeError(
                    f"memory_limit must be a size string such as '128M', got {type(v).__name__}"
                )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Read the YAML file after the sources that may point at it."""
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileFromFieldSource(settings_cls=settings_cls),
            file_secret_settings,
        )
