"""Pydantic models for serpnav."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Generic enclosing-block pattern used when a provider declares no container rule
DEFAULT_CONTAINER_FALLBACK = "li, article, div"


# =============================================================================
# Provider profiles
# =============================================================================

class ContainerRule(BaseModel):
    """How to find the structural block enclosing a result link.

    ``ancestor`` is matched against the link's ancestors, nearest first.
    Without it the generic fallback pattern applies.
    """

    model_config = ConfigDict(frozen=True)

    ancestor: Optional[str] = None

    @property
    def selector(self) -> str:
        return self.ancestor or DEFAULT_CONTAINER_FALLBACK


class StructuralExclusion(BaseModel):
    """Drop a result whose nearest ``nearest`` ancestor matches ``marker``.

    Example: nearest="li", marker="[data-module]" removes results rendered
    inside list items tagged as non-organic modules.
    """

    model_config = ConfigDict(frozen=True)

    nearest: str
    marker: str


class EngineProfile(BaseModel):
    """Declarative description of one search provider."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    domains: tuple[str, ...]
    search_path_matchers: tuple[str, ...]
    query_param: Optional[str] = None
    uses_url_params: bool = True
    selectors: tuple[str, ...]
    exclude_patterns: tuple[str, ...] = ()
    skip_container_selectors: tuple[str, ...] = ()
    container: ContainerRule = Field(default_factory=ContainerRule)
    structural_exclusions: tuple[StructuralExclusion, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _accept_single_search_path(cls, data: Any) -> Any:
        # Registry files may say `search_path: /search` or list several fragments
        if isinstance(data, dict) and "search_path" in data:
            data = dict(data)
            path = data.pop("search_path")
            data.setdefault("search_path_matchers", [path] if isinstance(path, str) else path)
        return data

    @field_validator("domains", "search_path_matchers", "selectors")
    @classmethod
    def _not_empty(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("must list at least one entry")
        return value

    @model_validator(mode="after")
    def _query_source(self) -> "EngineProfile":
        if self.uses_url_params and not self.query_param:
            raise ValueError(f"engine {self.key!r} reads the query from the URL but has no query_param")
        return self


# =============================================================================
# Per page-load context
# =============================================================================

class SearchContext(BaseModel):
    """One executed search, derived once per page load."""

    model_config = ConfigDict(frozen=True)

    profile: EngineProfile
    raw_query: str
    sanitized_query: str
    identifier: str = Field(min_length=1)


# =============================================================================
# User settings (owned by the external settings store)
# =============================================================================

class UserSettings(BaseModel):
    """Immutable snapshot of the user-facing settings."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    result_index: int = Field(default=1, ge=1, le=5)
    enabled_engines: dict[str, bool] = Field(default_factory=dict)
    show_notification: bool = True

    def engine_enabled(self, key: str) -> bool:
        """All engines count as enabled until the user picks some."""
        if not self.enabled_engines:
            return True
        return bool(self.enabled_engines.get(key, False))
