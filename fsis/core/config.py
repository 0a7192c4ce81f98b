"""
Core configuration and settings for the FS Image Server.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, SettingsError

from fsis.core.exceptions import ConfigurationError


class GroupConfig(BaseModel):
    """One named serving scope: a base directory plus its access rules.

    Keys mirror the wiki configuration format::

        {"path": "/srv/img", "right": "fsis-view",
         "fallback": "/srv/img-missing.png", "mimetypes": ["image/png"]}
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str
    right: str | None = None
    fallback: str | None = None
    mimetypes: tuple[str, ...] = ()

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        if not v or not Path(v).is_absolute():
            raise ValueError(f"group path must be an absolute directory, got {v!r}")
        return v

    @field_validator("fallback")
    @classmethod
    def validate_fallback(cls, v: str | None) -> str | None:
        # Empty string means "no fallback", same as leaving the key out
        if not v:
            return None
        if not Path(v).is_absolute():
            raise ValueError(f"fallback must be an absolute file path, got {v!r}")
        return v

    @field_validator("right", mode="before")
    @classmethod
    def empty_right_is_none(cls, v: Any) -> Any:
        return v or None

    @field_validator("mimetypes", mode="before")
    @classmethod
    def normalize_mimetypes(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = [v]
        return tuple(str(t).strip().lower() for t in v if str(t).strip())

    @property
    def base_path(self) -> str:
        return self.path

    @property
    def required_permission(self) -> str | None:
        return self.right

    @property
    def fallback_path(self) -> str | None:
        return self.fallback

    @property
    def allowed_mime_types(self) -> frozenset[str]:
        return frozenset(self.mimetypes)


class TokenEntry(BaseModel):
    """An API token holder: display name and the roles it carries."""

    model_config = ConfigDict(frozen=True)

    name: str
    roles: tuple[str, ...] = ("user",)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "FS Image Server"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_sample_rate: float = Field(default=0.10, ge=0.0, le=1.0)

    # Groups
    fsis_groups: dict[str, GroupConfig] = Field(default_factory=dict)
    fsis_groups_file: str | None = None

    # Permissions: role -> rights. "*" applies to everyone, "user" to every token holder.
    role_rights: dict[str, list[str]] = Field(default_factory=dict)
    api_tokens: dict[str, TokenEntry] = Field(default_factory=dict)

    # Responses
    default_language: str = "en"
    cache_max_age: int = 3600

    _groups: dict[str, GroupConfig] = PrivateAttr(default_factory=dict)

    @field_validator("role_rights", mode="before")
    @classmethod
    def parse_role_rights(cls, v: Any) -> Any:
        """Accept a comma-separated rights list per role."""
        if isinstance(v, dict):
            return {
                role: [r.strip() for r in rights.split(",") if r.strip()]
                if isinstance(rights, str) else rights
                for role, rights in v.items()
            }
        return v

    def model_post_init(self, __context: Any) -> None:
        """Build the group table once; entries from ``fsis_groups`` win over the file."""
        self._groups = {**load_groups_file(self.fsis_groups_file), **self.fsis_groups}

    @property
    def groups(self) -> dict[str, GroupConfig]:
        return self._groups


def load_groups_file(path: str | None) -> dict[str, GroupConfig]:
    """Load a JSON group table from disk.

    Raises:
        ConfigurationError: If the file is unreadable or malformed
    """
    if not path:
        return {}

    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Cannot load group file {path}",
            details={"error": str(e)},
        ) from e

    if not isinstance(raw, dict):
        raise ConfigurationError(
            f"Group file {path} must contain a JSON object",
            details={"type": type(raw).__name__},
        )

    groups: dict[str, GroupConfig] = {}
    for name, entry in raw.items():
        try:
            groups[name] = GroupConfig.model_validate(entry)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid configuration for group {name!r}",
                details={"error": str(e)},
            ) from e
    return groups


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Raises:
        ConfigurationError: If any setting or group entry is invalid
    """
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid settings",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
    except SettingsError as e:
        raise ConfigurationError("Invalid settings", details={"error": str(e)}) from e
