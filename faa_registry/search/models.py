"""
Request and response types of the aircraft search.
"""

import math
from dataclasses import dataclass, field, replace
from datetime import date
from typing import NamedTuple

DEFAULT_PAGE_SIZE = 25
MAX_PAGE_SIZE = 100
MAX_PAGE = 1000


def _iso(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


class TailNumberFilter(NamedTuple):
    """Tail number match: prefix by default, whole value when ``exact``."""
    value: str
    exact: bool = False


@dataclass(frozen=True)
class SearchFilters:
    """
    Filters of one search request.

    The HTTP layer requires at least one of tail number, status, manufacturer
    or owner; the engine itself accepts an empty filter set.
    """

    tail_number: TailNumberFilter | None = None
    status: str | None = None
    manufacturer: str | None = None
    owner: str | None = None
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def normalized(self) -> "SearchFilters":
        """
        Canonical form of the filters.

        Tail number uppercased and "N"-prefixed, status uppercased, text
        trimmed (blank becomes None), page and page size clamped.
        """
        tail_number = None
        if self.tail_number is not None:
            value = self.tail_number.value.strip().upper()
            if value:
                if not value.startswith("N"):
                    value = f"N{value}"
                tail_number = TailNumberFilter(value=value, exact=self.tail_number.exact)

        status = _clean(self.status)
        return replace(
            self,
            tail_number=tail_number,
            status=status.upper() if status else None,
            manufacturer=_clean(self.manufacturer),
            owner=_clean(self.owner),
            page=min(max(1, int(self.page)), MAX_PAGE),
            page_size=min(max(1, int(self.page_size)), MAX_PAGE_SIZE),
        )

    def has_text_filters(self) -> bool:
        """True when manufacturer or owner text matching is involved."""
        return bool(self.manufacturer or self.owner)

    def to_dict(self) -> dict:
        return {
            "tail_number": self.tail_number._asdict() if self.tail_number else None,
            "status": self.status,
            "manufacturer": self.manufacturer,
            "owner": self.owner,
        }


class OwnerSummary(NamedTuple):
    name: str
    city: str | None
    state: str | None
    country: str | None
    ownership_type: str | None
    last_action_date: date | None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "ownership_type": self.ownership_type,
            "last_action_date": _iso(self.last_action_date),
        }


class AircraftSummary(NamedTuple):
    """One aircraft in a search result, with model, engine and owners resolved."""
    tail_number: str
    serial_number: str | None
    status_code: str | None
    registrant_type: str | None
    manufacturer: str | None
    model: str | None
    model_code: str | None
    engine_manufacturer: str | None
    engine_model: str | None
    airworthiness_class: str | None
    certification_issue_date: date | None
    expiration_date: date | None
    last_activity_date: date | None
    fractional_ownership: bool | None
    owners: tuple[OwnerSummary, ...] = ()

    def to_dict(self) -> dict:
        return {
            "tail_number": self.tail_number,
            "serial_number": self.serial_number,
            "status_code": self.status_code,
            "registrant_type": self.registrant_type,
            "manufacturer": self.manufacturer,
            "model": self.model,
            "model_code": self.model_code,
            "engine_manufacturer": self.engine_manufacturer,
            "engine_model": self.engine_model,
            "airworthiness_class": self.airworthiness_class,
            "certification_issue_date": _iso(self.certification_issue_date),
            "expiration_date": _iso(self.expiration_date),
            "last_activity_date": _iso(self.last_activity_date),
            "fractional_ownership": self.fractional_ownership,
            "owners": [owner.to_dict() for owner in self.owners],
        }


@dataclass
class SearchPage:
    """A page of search results plus paging metadata."""

    data: list[AircraftSummary]
    total: int
    filters: SearchFilters
    used_fallback: bool = False
    meta: dict = field(init=False)

    def __post_init__(self) -> None:
        page_size = self.filters.page_size
        self.meta = {
            "page": self.filters.page,
            "page_size": page_size,
            "total": self.total,
            "total_pages": 0 if self.total == 0 else math.ceil(self.total / page_size),
        }

    @property
    def total_pages(self) -> int:
        return self.meta["total_pages"]

    def to_dict(self) -> dict:
        return {
            "data": [item.to_dict() for item in self.data],
            "meta": dict(self.meta),
            "filters": self.filters.to_dict(),
        }


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "TailNumberFilter",
    "SearchFilters",
    "OwnerSummary",
    "AircraftSummary",
    "SearchPage",
]
