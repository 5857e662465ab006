"""
Aircraft search over the canonical registry tables.

A search runs in two phases:
1. In one transaction, count the matching aircraft and pick the page's ids
   with ROW_NUMBER() OVER (ORDER BY tail_number, id), so paging is stable
   even when sort keys repeat.
2. Hydrate those ids with model, manufacturer, engine and owners.

Manufacturer and owner filters use the store's full-text predicate first.
When the store reports that full-text search is unavailable for the column,
the whole search is retried once with case-insensitive substring matching.
"""

from sqlalchemy import Select, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import DBAPIError
from sqlalchemy.sql.elements import ColumnElement

from faa_registry.utils import logger
from faa_registry.ingestion.db.dialects import SqlDialect, dialect_for_engine
from faa_registry.ingestion.db.schema import (
    aircraft,
    aircraft_models,
    aircraft_owners,
    engines,
    manufacturers,
    owners,
)
from faa_registry.search.models import (
    AircraftSummary,
    OwnerSummary,
    SearchFilters,
    SearchPage,
)


def _where(query: Select, conditions: list[ColumnElement[bool]]) -> Select:
    return query.where(*conditions) if conditions else query


class AircraftSearchEngine:
    """
    Paginated, filtered aircraft lookup.

    Each search uses its own connection; nothing is shared with the refresh
    pipeline besides the engine.
    """

    def __init__(self, engine: Engine, dialect: SqlDialect | None = None):
        self.engine = engine
        self.dialect = dialect or dialect_for_engine(engine)

    def search(self, filters: SearchFilters) -> SearchPage:
        """
        Run a search.

        Raises:
            sqlalchemy.exc.DBAPIError: For any store error other than
                "full-text unavailable" on a text-filtered search
        """
        filters = filters.normalized()

        try:
            return self._search(filters, full_text=True)
        except DBAPIError as e:
            if not filters.has_text_filters() or not self.dialect.is_full_text_unavailable(e):
                raise
            logger.warning(
                f"Full-text search unavailable on {self.dialect.name}, "
                f"retrying with substring matching: {e.orig}"
            )

        page = self._search(filters, full_text=False)
        page.used_fallback = True
        return page

    # =========================================================================
    # Filters
    # =========================================================================

    def _text_predicate(self, column, value: str, full_text: bool) -> ColumnElement[bool]:
        if full_text:
            predicate = self.dialect.full_text_predicate(column, value)
            if predicate is not None:
                return predicate
        return self.dialect.substring_predicate(column, value)

    def _conditions(self, filters: SearchFilters, full_text: bool) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []

        if filters.tail_number is not None:
            if filters.tail_number.exact:
                conditions.append(aircraft.c.tail_number == filters.tail_number.value)
            else:
                conditions.append(
                    aircraft.c.tail_number.startswith(filters.tail_number.value, autoescape=True)
                )

        if filters.status:
            conditions.append(aircraft.c.status_code == filters.status)

        if filters.manufacturer:
            model_ids = (
                select(aircraft_models.c.id)
                .join(manufacturers, manufacturers.c.id == aircraft_models.c.manufacturer_id)
                .where(self._text_predicate(manufacturers.c.name, filters.manufacturer, full_text))
            )
            conditions.append(aircraft.c.model_id.in_(model_ids))

        if filters.owner:
            owned = (
                select(aircraft_owners.c.id)
                .join(owners, owners.c.id == aircraft_owners.c.owner_id)
                .where(
                    aircraft_owners.c.aircraft_id == aircraft.c.id,
                    self._text_predicate(owners.c.name, filters.owner, full_text),
                )
                .exists()
            )
            conditions.append(owned)

        return conditions

    # =========================================================================
    # Phases
    # =========================================================================

    def _search(self, filters: SearchFilters, full_text: bool) -> SearchPage:
        conditions = self._conditions(filters, full_text)

        with self.engine.connect() as conn:
            with conn.begin():
                total = conn.execute(
                    _where(select(func.count()).select_from(aircraft), conditions)
                ).scalar_one()
                ids = self._page_ids(conn, conditions, filters) if total else []

            data = self._hydrate(conn, ids) if ids else []

        return SearchPage(data=data, total=total, filters=filters)

    def _page_ids(
        self,
        conn: Connection,
        conditions: list[ColumnElement[bool]],
        filters: SearchFilters,
    ) -> list[int]:
        row_number = (
            func.row_number()
            .over(order_by=(aircraft.c.tail_number, aircraft.c.id))
            .label("row_number")
        )
        numbered = _where(select(aircraft.c.id, row_number), conditions).subquery("numbered")

        offset = (filters.page - 1) * filters.page_size
        query = (
            select(numbered.c.id)
            .where(
                numbered.c.row_number > offset,
                numbered.c.row_number <= offset + filters.page_size,
            )
            .order_by(numbered.c.row_number)
        )
        return list(conn.execute(query).scalars())

    def _hydrate(self, conn: Connection, ids: list[int]) -> list[AircraftSummary]:
        """Load full rows for ``ids``, keeping their order."""
        aircraft_query = (
            select(
                aircraft.c.id,
                aircraft.c.tail_number,
                aircraft.c.serial_number,
                aircraft.c.status_code,
                aircraft.c.registrant_type,
                aircraft.c.airworthiness_class,
                aircraft.c.certification_issue_date,
                aircraft.c.expiration_date,
                aircraft.c.last_activity_date,
                aircraft.c.fractional_ownership,
                manufacturers.c.name.label("manufacturer"),
                aircraft_models.c.model_name,
                aircraft_models.c.code.label("model_code"),
                engines.c.manufacturer.label("engine_manufacturer"),
                engines.c.model.label("engine_model"),
            )
            .select_from(
                aircraft
                .outerjoin(aircraft_models, aircraft_models.c.id == aircraft.c.model_id)
                .outerjoin(manufacturers, manufacturers.c.id == aircraft_models.c.manufacturer_id)
                .outerjoin(engines, engines.c.id == aircraft.c.engine_id)
            )
            .where(aircraft.c.id.in_(ids))
        )
        owners_query = (
            select(
                aircraft_owners.c.aircraft_id,
                owners.c.name,
                owners.c.city,
                owners.c.state,
                owners.c.country,
                aircraft_owners.c.ownership_type,
                aircraft_owners.c.last_action_date,
            )
            .join_from(aircraft_owners, owners, owners.c.id == aircraft_owners.c.owner_id)
            .where(aircraft_owners.c.aircraft_id.in_(ids))
            .order_by(owners.c.name, owners.c.id)
        )

        rows = {row.id: row for row in conn.execute(aircraft_query)}
        owners_by_aircraft: dict[int, list[OwnerSummary]] = {}
        for row in conn.execute(owners_query):
            owners_by_aircraft.setdefault(row.aircraft_id, []).append(
                OwnerSummary(
                    name=row.name,
                    city=row.city,
                    state=row.state,
                    country=row.country,
                    ownership_type=row.ownership_type,
                    last_action_date=row.last_action_date,
                )
            )

        results: list[AircraftSummary] = []
        for aircraft_id in ids:
            row = rows.get(aircraft_id)
            if row is None:
                # Deleted between the two phases
                continue
            results.append(
                AircraftSummary(
                    tail_number=row.tail_number,
                    serial_number=row.serial_number,
                    status_code=row.status_code,
                    registrant_type=row.registrant_type,
                    manufacturer=row.manufacturer,
                    model=row.model_name,
                    model_code=row.model_code,
                    engine_manufacturer=row.engine_manufacturer,
                    engine_model=row.engine_model,
                    airworthiness_class=row.airworthiness_class,
                    certification_issue_date=row.certification_issue_date,
                    expiration_date=row.expiration_date,
                    last_activity_date=row.last_activity_date,
                    fractional_ownership=row.fractional_ownership,
                    owners=tuple(owners_by_aircraft.get(aircraft_id, ())),
                )
            )
        return results


def create_search_engine(engine: Engine) -> AircraftSearchEngine:
    """Create a search engine bound to ``engine``."""
    return AircraftSearchEngine(engine)


__all__ = ["AircraftSearchEngine", "create_search_engine"]
