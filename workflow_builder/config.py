"""Configuration for the workflow builder.

Two groups of settings, both read from the environment:

* ``AppConfig``: server, database, logging and engine settings, read from
  ``WORKFLOW_ENGINE_*`` variables.
* ``IntegrationSettings``: credentials of the external services, read from
  the providers' conventional variable names (``SMTP_USER``,
  ``TWILIO_ACCOUNT_SID``, ``OPENWEATHER_API_KEY``...). A missing credential
  puts the matching service adapter in simulated mode.
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from enum import Enum
from dotenv import load_dotenv

from .core.exceptions import ConfigurationError

ENV_PREFIX = "WORKFLOW_ENGINE_"
SUPPORTED_DATABASE_SCHEMES = ("sqlite", "postgresql", "mysql")


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def _get_env(key: str, default=None, type_func=str, prefix: str = ""):
    """Read one environment variable, converting it with ``type_func``.

    Unset and empty variables yield ``default``. Booleans accept
    true/1/yes/on; lists are comma separated.
    """
    value = os.getenv(f"{prefix}{key}")
    if value is None or value == "":
        return default
    if type_func == bool:
        return value.lower() in ("true", "1", "yes", "on")
    if type_func == list:
        return [item.strip() for item in value.split(",") if item.strip()]
    return type_func(value)


class AppConfig(BaseModel):
    """Server, storage, logging and engine settings."""

    app_name: str = Field(default="Workflow Builder")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)

    host: str = Field(default="0.0.0.0", description="Address the HTTP server binds to")
    port: int = Field(default=3001, description="Port the HTTP server listens on")

    database_url: str = Field(default="sqlite:///./workflow_builder.db", description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    node_delay: float = Field(
        default=0.5,
        description="Fixed pause in seconds injected before every node handler"
    )

    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: Optional[str] = Field(default=None, description="Plain-text log format string")
    log_file: Optional[str] = Field(default=None, description="Rotating log file path")
    log_structured: bool = Field(default=False, description="Emit JSON log lines")
    log_max_size: int = Field(default=10 * 1024 * 1024, description="Log file size in bytes before rotation")
    log_backup_count: int = Field(default=5, description="Rotated log files to keep")

    slow_request_threshold: float = Field(default=5.0, description="Seconds before a request is logged as slow")
    cors_origins: list = Field(default=["*"])
    cors_methods: list = Field(default=["GET", "POST", "PUT", "DELETE"])

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("Database URL cannot be empty")
        # "postgresql+psycopg2://..." -> "postgresql"
        scheme = v.split("://")[0].lower().split("+")[0]
        if scheme not in SUPPORTED_DATABASE_SCHEMES:
            raise ValueError(f"Unsupported database scheme: {scheme}. Supported: {list(SUPPORTED_DATABASE_SCHEMES)}")
        return v

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator('node_delay')
    @classmethod
    def validate_node_delay(cls, v):
        if v < 0:
            raise ValueError("Node delay cannot be negative")
        return v

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.lower().startswith("sqlite")

    def get_database_connect_args(self) -> Dict[str, Any]:
        # SQLite connections are shared with the request thread pool
        return {"check_same_thread": False} if self.is_sqlite else {}

    def get_uvicorn_config(self) -> Dict[str, Any]:
        """Keyword arguments for ``uvicorn.run``."""
        return {
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug
        }

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """Build the configuration from ``WORKFLOW_ENGINE_*`` variables."""
        def env(key, default=None, type_func=str):
            return _get_env(key, default, type_func, prefix=ENV_PREFIX)

        return cls(
            app_name=env("APP_NAME", "Workflow Builder"),
            app_version=env("APP_VERSION", "1.0.0"),
            debug=env("DEBUG", False, bool),
            host=env("HOST", "0.0.0.0"),
            port=env("PORT", 3001, int),
            database_url=env("DATABASE_URL", "sqlite:///./workflow_builder.db"),
            database_echo=env("DATABASE_ECHO", False, bool),
            node_delay=env("NODE_DELAY", 0.5, float),
            log_level=LogLevel(env("LOG_LEVEL", "INFO").upper()),
            log_format=env("LOG_FORMAT"),
            log_file=env("LOG_FILE"),
            log_structured=env("LOG_STRUCTURED", False, bool),
            log_max_size=env("LOG_MAX_SIZE", 10 * 1024 * 1024, int),
            log_backup_count=env("LOG_BACKUP_COUNT", 5, int),
            slow_request_threshold=env("SLOW_REQUEST_THRESHOLD", 5.0, float),
            cors_origins=env("CORS_ORIGINS", ["*"], list),
            cors_methods=env("CORS_METHODS", ["GET", "POST", "PUT", "DELETE"], list),
        )


class IntegrationSettings(BaseModel):
    """Credentials for external services. Every field is optional; a missing
    credential puts the matching adapter in simulated mode."""

    smtp_host: str = Field(default="smtp.gmail.com", description="SMTP server host")
    smtp_port: int = Field(default=587, description="SMTP server port")
    smtp_user: Optional[str] = Field(default=None, description="SMTP username, also the sender address")
    smtp_password: Optional[str] = Field(default=None, description="SMTP password")

    twilio_account_sid: Optional[str] = Field(default=None, description="Twilio account SID")
    twilio_auth_token: Optional[str] = Field(default=None, description="Twilio auth token")
    twilio_phone_number: Optional[str] = Field(default=None, description="Twilio sender number")

    openweather_api_key: Optional[str] = Field(default=None, description="OpenWeatherMap API key")

    twitter_api_key: Optional[str] = Field(default=None, description="Twitter app key")
    twitter_api_secret: Optional[str] = Field(default=None, description="Twitter app secret")
    twitter_access_token: Optional[str] = Field(default=None, description="Twitter access token")
    twitter_access_secret: Optional[str] = Field(default=None, description="Twitter access token secret")

    github_token: Optional[str] = Field(default=None, description="GitHub API token")

    service_timeout: Optional[float] = Field(
        default=None,
        description="Timeout in seconds for outbound calls (None blocks until the call returns)"
    )

    @field_validator('smtp_port')
    @classmethod
    def validate_smtp_port(cls, v):
        if not 1 <= v <= 65535:
            raise ValueError("SMTP port must be between 1 and 65535")
        return v

    @classmethod
    def from_env(cls) -> 'IntegrationSettings':
        """Build the settings from the providers' environment variables."""
        return cls(
            smtp_host=_get_env("SMTP_HOST", "smtp.gmail.com"),
            smtp_port=_get_env("SMTP_PORT", 587, int),
            smtp_user=_get_env("SMTP_USER"),
            smtp_password=_get_env("SMTP_PASSWORD"),
            twilio_account_sid=_get_env("TWILIO_ACCOUNT_SID"),
            twilio_auth_token=_get_env("TWILIO_AUTH_TOKEN"),
            twilio_phone_number=_get_env("TWILIO_PHONE_NUMBER"),
            openweather_api_key=_get_env("OPENWEATHER_API_KEY"),
            twitter_api_key=_get_env("TWITTER_API_KEY"),
            twitter_api_secret=_get_env("TWITTER_API_SECRET"),
            twitter_access_token=_get_env("TWITTER_ACCESS_TOKEN"),
            twitter_access_secret=_get_env("TWITTER_ACCESS_SECRET"),
            github_token=_get_env("GITHUB_TOKEN"),
            service_timeout=_get_env("INTEGRATION_TIMEOUT", None, float),
        )


_config: Optional[AppConfig] = None
_integration_settings: Optional[IntegrationSettings] = None


def get_config() -> AppConfig:
    """Process-wide application configuration, read from the environment once."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def get_integration_settings() -> IntegrationSettings:
    global _integration_settings
    if _integration_settings is None:
        _integration_settings = IntegrationSettings.from_env()
    return _integration_settings


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load a dotenv file into the environment and rebuild both settings groups.

    Without ``config_file``, ``./.env`` is loaded when present. Variables
    already set in the environment win over the file.

    Raises:
        ConfigurationError: If ``config_file`` is given but does not exist
    """
    global _config, _integration_settings

    if config_file:
        if not os.path.exists(config_file):
            raise ConfigurationError(f"Configuration file not found: {config_file}", config_key="config_file")
        load_dotenv(config_file)
    elif os.path.exists(".env"):
        load_dotenv(".env")

    _config = AppConfig.from_env()
    _integration_settings = IntegrationSettings.from_env()
    return _config


def reset_config():
    """Forget the cached settings (tests)."""
    global _config, _integration_settings
    _config = None
    _integration_settings = None


def get_testing_config() -> AppConfig:
    """In-memory SQLite, no node delay, quiet logging."""
    return AppConfig(
        debug=True,
        database_url="sqlite:///:memory:",
        log_level=LogLevel.WARNING,
        node_delay=0.0,
        cors_origins=[]
    )
