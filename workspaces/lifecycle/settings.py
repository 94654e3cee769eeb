"""Configuration loaded from the TOML config file and WORKSPACES_* variables.

The config file lives at ``/etc/workspaces/workspaces.toml`` unless
``WORKSPACES_CONFIG`` points elsewhere.  A minimal file::

    default_filesystem = "tank"

    [filesystems.tank]
    root = "tank/workspaces"
    max_duration = 90
    expired_retention = 7
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from workspaces.lifecycle.errors import NoPoolSpecifiedError, UnknownPoolError
from workspaces.lifecycle.log import QUIET_LOGGERS
from workspaces.lifecycle.models.workspace import Pool

DEFAULT_CONFIG_PATH = Path("/etc/workspaces/workspaces.toml")
DEFAULT_DATABASE_PATH = Path("/usr/local/lib/workspaces/workspaces.db")

LEGACY_KEYS = {"filesystems": "pools", "default_filesystem": "default_pool"}


def config_path() -> Path:
    """Path of the TOML config file, honouring ``WORKSPACES_CONFIG``."""
    return Path(os.environ.get("WORKSPACES_CONFIG", DEFAULT_CONFIG_PATH))


class WorkspacesSettings(BaseSettings):
    """Workspaces settings.

    Values are read, highest priority first, from constructor arguments,
    ``WORKSPACES_*`` environment variables and the TOML config file.  For
    example ``WORKSPACES_LOG_LEVEL=DEBUG`` maps to ``log_level``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WORKSPACES_",
        case_sensitive=False,
        extra="ignore",
    )

    # -- Logging ---------------------------------------------------------------
    log_level: str = "WARNING"
    quiet_loggers: list[str] = Field(default_factory=lambda: list(QUIET_LOGGERS))
    """Stdlib loggers held at WARNING whatever ``log_level`` says."""

    # -- Infrastructure --------------------------------------------------------
    database_path: Path = DEFAULT_DATABASE_PATH
    """SQLite file holding the workspace table."""

    zfs_binary: str = "zfs"

    # -- Pools -----------------------------------------------------------------
    pools: dict[str, Pool] = Field(default_factory=dict)
    default_pool: str | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=config_path()),
        )

    @model_validator(mode="before")
    @classmethod
    def _accept_filesystem_keys(cls, data: object) -> object:
        """Accept the ``filesystems`` / ``default_filesystem`` spelling."""
        if isinstance(data, dict):
            data = dict(data)
            for legacy, key in LEGACY_KEYS.items():
                if legacy in data:
                    data.setdefault(key, data.pop(legacy))
        return data

    @model_validator(mode="after")
    def _name_pools(self) -> WorkspacesSettings:
        # Pools are keyed by name in the config; carry the key on the model.
        self.pools = {
            name: pool if pool.name == name else pool.model_copy(update={"name": name})
            for name, pool in self.pools.items()
        }
        return self

    # -- Helpers ---------------------------------------------------------------

    def resolve_pool(self, name: str | None = None) -> Pool:
        """Pick the pool an operation applies to.

        Preference order: the given name, the configured default, the only
        pool if exactly one is configured.  Raises ``NoPoolSpecifiedError``
        when none applies and ``UnknownPoolError`` for unconfigured names.
        """
        if name is None:
            if self.default_pool is not None:
                name = self.default_pool
            elif len(self.pools) == 1:
                name = next(iter(self.pools))
            else:
                raise NoPoolSpecifiedError
        try:
            return self.pools[name]
        except KeyError:
            raise UnknownPoolError(name, list(self.pools)) from None


def get_settings() -> WorkspacesSettings:
    """Return a cached settings instance.

    Call ``_get_settings_cached.cache_clear()`` in tests to force a re-read after
    overriding env vars or the config file.
    """
    return _get_settings_cached()


@lru_cache(maxsize=1)
def _get_settings_cached() -> WorkspacesSettings:
    return WorkspacesSettings()


