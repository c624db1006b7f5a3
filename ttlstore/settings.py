from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for stores and the cached HTTP client.

    Notes
    -----
    - Durations are expressed in seconds. Zero means "use the built-in
      default" (see `ttlstore.cache.DEFAULT_TTL` and
      `ttlstore.cache.DEFAULT_SWEEP_INTERVAL`); negative values are rejected.
    - Values come from keyword arguments, then `TTLSTORE_*` environment
      variables, then a `.env` file in the working directory, then the
      defaults below.
    """

    model_config = SettingsConfigDict(
        env_prefix="TTLSTORE_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    default_ttl: float = 5 * 60  # 5 minutes
    sweep_interval: float = 5  # background eviction period
    log_level: str = "INFO"
    # HTTP client
    http_timeout: float = 20
    http_cache_ttl: float = 60

    @field_validator("default_ttl", "sweep_interval", "http_cache_ttl")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("duration must not be negative")
        return v

    @field_validator("http_timeout")
    @classmethod
    def _positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def _upper(cls, v: str) -> str:
        return v.strip().upper()

    @classmethod
    def from_env(cls, prefix: str = "TTLSTORE_", env_file: Optional[str] = ".env") -> "Settings":
        """Build settings from `<prefix><FIELD>` variables and a dotenv file.

        Parameters
        ----------
        prefix : str
            Variable name prefix, e.g. `TTLSTORE_DEFAULT_TTL`.
        env_file : Optional[str]
            Dotenv file to read; variables already in the process
            environment take precedence. `None` disables file loading.

        Returns
        -------
        Settings
            Missing or empty variables keep their defaults.

        Raises
        ------
        pydantic.ValidationError
            If a variable cannot be coerced or fails validation.
        """

        return cls(_env_prefix=prefix, _env_file=env_file)


settings = Settings()
