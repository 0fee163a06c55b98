"""
serpnav/engines/registry.py

Engine Registry - static table of search provider profiles.

Profiles are pure data (see engines/data/engines.yaml). Iteration order is the
file order and never changes after load, so overlapping domain rules resolve
predictably in the detector.

Usage:
    from serpnav.engines.registry import get_engine_registry

    registry = get_engine_registry()
    google = registry.get("google")
"""

import logging
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

import yaml
from pydantic import ValidationError

from serpnav.core.config import get_settings, load_yaml_document
from serpnav.core.exceptions import EngineRegistryError
from serpnav.core.models import EngineProfile

logger = logging.getLogger(__name__)


class EngineRegistry:
    """Ordered, immutable collection of EngineProfile entries."""

    def __init__(self, profiles: Iterable[EngineProfile]):
        self._profiles: tuple[EngineProfile, ...] = tuple(profiles)
        self._by_key = {}
        for profile in self._profiles:
            if profile.key in self._by_key:
                raise EngineRegistryError(
                    f"Duplicate engine key {profile.key!r}",
                    context={"key": profile.key},
                )
            self._by_key[profile.key] = profile

    def __iter__(self) -> Iterator[EngineProfile]:
        return iter(self._profiles)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, key: str) -> bool:
        return key in self._by_key

    def get(self, key: str) -> Optional[EngineProfile]:
        return self._by_key.get(key)

    def keys(self) -> List[str]:
        return [profile.key for profile in self._profiles]

    @classmethod
    def from_document(cls, document: dict, source: str = "<memory>") -> "EngineRegistry":
        """Build a registry from a parsed ``{"engines": [...]}`` document."""
        if not isinstance(document, dict) or not isinstance(document.get("engines"), list):
            raise EngineRegistryError(
                f"Engine registry {source} must contain an 'engines' list",
                context={"source": source},
            )

        profiles = []
        for position, entry in enumerate(document["engines"]):
            try:
                profiles.append(EngineProfile.model_validate(entry))
            except ValidationError as e:
                key = entry.get("key") if isinstance(entry, dict) else None
                raise EngineRegistryError(
                    f"Invalid engine #{position} ({key}) in {source}: {e}",
                    context={"source": source, "position": position, "key": key},
                ) from e
        return cls(profiles)


def load_engine_registry(path: Optional[Path] = None) -> EngineRegistry:
    """
    Load the provider table from YAML.

    Args:
        path: Registry file; defaults to SERPNAV_ENGINES_FILE or the bundled table

    Returns:
        EngineRegistry in file order
    """
    path = Path(path) if path else get_settings().resolved_engines_file
    try:
        document = load_yaml_document(path)
    except OSError as e:
        raise EngineRegistryError(f"Cannot read engine registry {path}: {e}", context={"path": str(path)}) from e
    except yaml.YAMLError as e:
        raise EngineRegistryError(f"Malformed engine registry {path}: {e}", context={"path": str(path)}) from e

    registry = EngineRegistry.from_document(document, source=str(path))
    logger.info(f"[EngineRegistry] Loaded {len(registry)} engines from {path.name}")
    return registry


# Global instance
_engine_registry: Optional[EngineRegistry] = None


def get_engine_registry() -> EngineRegistry:
    """Get global EngineRegistry instance."""
    global _engine_registry
    if _engine_registry is None:
        _engine_registry = load_engine_registry()
    return _engine_registry
