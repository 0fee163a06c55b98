"""
Search provider profiles and page classification.

Contains:
- EngineRegistry / get_engine_registry: provider table loaded from YAML
- EngineDetector: host + path -> profile
- QueryPresenceCheck / sanitize_query: executed-query detection
"""

from serpnav.engines.detector import EngineDetector
from serpnav.engines.query_check import QueryPresenceCheck, sanitize_query
from serpnav.engines.registry import EngineRegistry, get_engine_registry, load_engine_registry

__all__ = [
    "EngineDetector",
    "EngineRegistry",
    "QueryPresenceCheck",
    "get_engine_registry",
    "load_engine_registry",
    "sanitize_query",
]
