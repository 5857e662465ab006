"""Read-path search over the canonical registry tables."""

from faa_registry.search.models import (
    AircraftSummary,
    OwnerSummary,
    SearchFilters,
    SearchPage,
    TailNumberFilter,
)
from faa_registry.search.engine import AircraftSearchEngine, create_search_engine

__all__ = [
    "AircraftSummary",
    "OwnerSummary",
    "SearchFilters",
    "SearchPage",
    "TailNumberFilter",
    "AircraftSearchEngine",
    "create_search_engine",
]
