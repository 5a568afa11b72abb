"""
Source Models — Pydantic schemas for the data-source registry.

The registry file (config.yml) lists every configured source, the
currently selected one, and a schema version used only for migrating
older files:

    sources:
      lynn-json:
        name: lynn-json
        displayName: Lynn (JSON)
        type: JSON
        url: https://github.com/...
        mirrorUrls: [...]
        apiBaseUrl: null
        enabled: true
        version: null
    currentSource: fletime
    version: 2
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Bump when built-in sources are added; older files get the new ones merged in
CURRENT_SCHEMA_VERSION = 2
DEFAULT_SOURCE = "fletime"


class SourceType(str, Enum):
    """How a source distributes its records."""
    JSON = "JSON"  # One fetchable document, cached locally
    API = "API"    # Queried live, never cached


class DataSource(BaseModel):
    """A single configured data source."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    type: SourceType = SourceType.JSON
    url: Optional[str] = None
    mirror_urls: List[Optional[str]] = Field(default_factory=list, alias="mirrorUrls")
    api_base_url: Optional[str] = Field(default=None, alias="apiBaseUrl")
    enabled: bool = True
    version: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("mirror_urls", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        # YAML turns `version: 3` into an int
        if value is None or isinstance(value, str):
            return value
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    @model_validator(mode="after")
    def _check_mode(self) -> "DataSource":
        if self.type == SourceType.API:
            if not self.api_base_url:
                raise ValueError(f"API source '{self.name}' requires apiBaseUrl")
            if any(self.mirror_urls):
                raise ValueError(f"API source '{self.name}' cannot have mirrorUrls")
        elif not self.get_all_urls():
            raise ValueError(f"JSON source '{self.name}' has no url or mirrorUrls")
        return self

    @property
    def is_api_mode(self) -> bool:
        return self.type == SourceType.API

    @property
    def label(self) -> str:
        """Human-readable name for this source."""
        return self.display_name or self.name

    @property
    def mode_label(self) -> str:
        return "API" if self.is_api_mode else "JSON"

    def get_all_urls(self) -> List[str]:
        """
        Primary URL followed by mirrors, in configured order.

        Null and blank entries are dropped. When a primary URL is
        configured it is always at index 0.
        """
        candidates = [self.url, *self.mirror_urls]
        return [u.strip() for u in candidates if u and u.strip()]

    def api_health_url(self) -> Optional[str]:
        """Reachability endpoint for API-mode sources."""
        if not self.api_base_url:
            return None
        return self.api_base_url.rstrip("/") + "/api/landmarks?source=zth"

    def api_version_url(self) -> Optional[str]:
        """Version endpoint for API-mode sources."""
        if not self.api_base_url:
            return None
        return self.api_base_url.rstrip("/") + "/version"


class RegistryConfig(BaseModel):
    """
    Complete registry state.

    This is the root model for config.yml. Instances are immutable;
    mutations produce a new snapshot via model_copy().
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    sources: Dict[str, DataSource] = Field(default_factory=dict)
    current_source: str = Field(default=DEFAULT_SOURCE, alias="currentSource")
    # Files written before versioning existed count as version 1
    version: int = 1

    @field_validator("sources", mode="before")
    @classmethod
    def _key_is_identity(cls, value: Any) -> Any:
        """The map key is the source identity; a differing `name` is a label."""
        if not isinstance(value, dict):
            return value

        normalized: Dict[str, Any] = {}
        for key, entry in value.items():
            if isinstance(entry, DataSource):
                entry = entry.model_dump(by_alias=True)
            if not isinstance(entry, dict):
                raise ValueError(f"Source '{key}' must be a mapping")
            entry = dict(entry)
            stored_name = entry.get("name")
            if stored_name and stored_name != key and not entry.get("displayName"):
                entry["displayName"] = stored_name
            entry["name"] = str(key)
            normalized[str(key)] = entry
        return normalized

    @property
    def current(self) -> Optional[DataSource]:
        return self.sources.get(self.current_source)

    def to_persisted(self) -> Dict[str, Any]:
        """Plain dict in the on-disk field naming."""
        return self.model_dump(by_alias=True, mode="json")


def default_sources() -> Dict[str, DataSource]:
    """The built-in sources shipped with every fresh registry."""
    return {
        "fletime": DataSource(
            name="fletime",
            display_name="FleTime",
            url="https://wiki.ria.red/wiki/%E7%94%A8%E6%88%B7:FleTime/toriifind.json?action=raw",
        ),
        "lynn-json": DataSource(
            name="lynn-json",
            display_name="Lynn (JSON)",
            url="https://github.com/7N4D6Un/ToriiFind/raw/refs/heads/main/data/lynn.json",
            mirror_urls=[
                "https://raw.kkgithub.com/7N4D6Un/ToriiFind/main/data/lynn.json",
                "https://fastly.jsdelivr.net/gh/7N4D6Un/ToriiFind@main/data/lynn.json",
            ],
        ),
        "lynn-api": DataSource(
            name="lynn-api",
            display_name="Lynn (API)",
            type=SourceType.API,
            api_base_url="https://ria-data.api.lynn6.top",
        ),
    }


def default_config() -> RegistryConfig:
    """A fresh registry with the built-in sources."""
    return RegistryConfig(
        sources=default_sources(),
        current_source=DEFAULT_SOURCE,
        version=CURRENT_SCHEMA_VERSION,
    )
