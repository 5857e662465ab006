"""
SQL dialect strategies for staging, merging and text search.

The refresh pipeline emits the same sequence of statements on every store;
only the statement text differs:

- SQL Server: ``MERGE ... USING (VALUES ...)`` / ``MERGE ... USING (SELECT ...)``
- PostgreSQL and SQLite: ``INSERT ... ON CONFLICT (...) DO UPDATE``

Each strategy also knows how to express a full-text predicate and how to
recognise the error its store raises when full-text search is unavailable.
"""

import re
from typing import NamedTuple, Sequence

from sqlalchemy import bindparam, func, literal_column
from sqlalchemy.engine import Engine
from sqlalchemy.sql.elements import ColumnElement

from faa_registry.utils.exceptions import UnsupportedDialectError

# Rows per multi-row statement, regardless of the parameter ceiling
MAX_ROWS_PER_STATEMENT = 1000

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


class MergePlan(NamedTuple):
    """
    Set-based promotion of one kind of staged row into its canonical table.

    ``columns`` pairs each canonical column with the SELECT expression that
    produces it from ``from_clause`` (staging table aliased as ``s``).
    ``condition`` further restricts which staged rows are promoted.
    """
    target: str
    key_columns: tuple[str, ...]
    columns: tuple[tuple[str, str], ...]
    from_clause: str
    update_columns: tuple[str, ...]
    condition: str | None = None


def search_tokens(value: str) -> list[str]:
    """Split free text into word tokens safe to embed in a full-text query."""
    return _TOKEN_PATTERN.findall(value or "")


def _error_text(error: BaseException) -> str:
    orig = getattr(error, "orig", None)
    return str(orig if orig is not None else error).lower()


class SqlDialect:
    """Base strategy: shared helpers plus the interface every dialect implements."""

    name: str = ""
    # Bind parameter ceiling per statement
    parameter_limit: int = 2100
    # Parameters a staging statement uses besides the row values
    reserved_parameters: int = 1
    # Extra parameters per row (positional drivers repeat :ingestion_id per VALUES tuple)
    row_overhead: int = 0

    def rows_per_statement(self, columns_per_row: int) -> int:
        """
        Rows that fit in one staging statement.

        Keeps ``reserved + rows * (columns + overhead)`` strictly below the
        parameter ceiling and never exceeds MAX_ROWS_PER_STATEMENT.
        """
        budget = self.parameter_limit - 1 - self.reserved_parameters
        per_row = max(1, columns_per_row + self.row_overhead)
        by_parameters = max(1, budget // per_row)
        return min(MAX_ROWS_PER_STATEMENT, by_parameters)

    def stage_sql(
        self,
        table: str,
        key_columns: Sequence[str],
        columns: Sequence[str],
        row_count: int,
    ) -> str:
        raise NotImplementedError

    def merge_sql(self, plan: MergePlan) -> str:
        raise NotImplementedError

    def full_text_predicate(self, column: ColumnElement, value: str) -> ColumnElement[bool] | None:
        """Full-text predicate for ``value``, or None when it has no searchable tokens."""
        raise NotImplementedError

    def is_full_text_unavailable(self, error: BaseException) -> bool:
        """True only for the store's own "full-text not available here" error."""
        return False

    def substring_predicate(self, column: ColumnElement, value: str) -> ColumnElement[bool]:
        """Case-insensitive ``LIKE '%value%'`` with wildcards in ``value`` escaped."""
        escaped = (
            value.strip().lower()
            .replace("\\", "\\\\")
            .replace("%", "\\%")
            .replace("_", "\\_")
        )
        return func.lower(column).like(f"%{escaped}%", escape="\\")

    @staticmethod
    def _values_rows(columns: Sequence[str], row_count: int) -> str:
        return ",\n    ".join(
            "(" + ", ".join(f":{column}_{index}" for column in columns) + ")"
            for index in range(row_count)
        )

    @staticmethod
    def _where_clause(plan: MergePlan) -> str:
        clause = "s.ingestion_id = :ingestion_id"
        return f"{clause} AND {plan.condition}" if plan.condition else clause

    @staticmethod
    def _select_list(plan: MergePlan) -> str:
        return ",\n    ".join(f"{expression} AS {column}" for column, expression in plan.columns)


class SqlServerDialect(SqlDialect):
    """SQL Server: MERGE-based upserts and CONTAINS full-text predicates."""

    name = "mssql"
    parameter_limit = 2100
    # :ingestion_id appears in both the ON clause and the INSERT branch
    reserved_parameters = 2

    _UNAVAILABLE_SIGNATURES = (
        "is not full-text indexed",
        "full-text search is not installed",
        "full-text catalog",
    )

    def stage_sql(self, table, key_columns, columns, row_count) -> str:
        non_key = [column for column in columns if column not in key_columns]
        on_clause = " AND ".join(
            ["tgt.ingestion_id = :ingestion_id"]
            + [f"tgt.{column} = src.{column}" for column in key_columns]
        )
        sql = (
            f"MERGE {table} WITH (HOLDLOCK) AS tgt\n"
            f"USING (VALUES\n    {self._values_rows(columns, row_count)}\n"
            f") AS src ({', '.join(columns)})\n"
            f"ON {on_clause}\n"
        )
        if non_key:
            assignments = ", ".join(f"tgt.{column} = src.{column}" for column in non_key)
            sql += f"WHEN MATCHED THEN UPDATE SET {assignments}\n"
        sql += (
            f"WHEN NOT MATCHED THEN INSERT (ingestion_id, {', '.join(columns)})\n"
            f"VALUES (:ingestion_id, {', '.join(f'src.{column}' for column in columns)});"
        )
        return sql

    def merge_sql(self, plan: MergePlan) -> str:
        columns = [column for column, _ in plan.columns]
        on_clause = " AND ".join(f"tgt.{column} = src.{column}" for column in plan.key_columns)
        assignments = [f"tgt.{column} = src.{column}" for column in plan.update_columns]
        assignments.append("tgt.updated_at = CURRENT_TIMESTAMP")
        return (
            f"MERGE {plan.target} WITH (HOLDLOCK) AS tgt\n"
            f"USING (\n"
            f"  SELECT\n    {self._select_list(plan)}\n"
            f"  FROM {plan.from_clause}\n"
            f"  WHERE {self._where_clause(plan)}\n"
            f") AS src\n"
            f"ON {on_clause}\n"
            f"WHEN MATCHED THEN UPDATE SET {', '.join(assignments)}\n"
            f"WHEN NOT MATCHED THEN INSERT ({', '.join(columns)})\n"
            f"VALUES ({', '.join(f'src.{column}' for column in columns)});"
        )

    def full_text_predicate(self, column, value):
        tokens = search_tokens(value)
        if not tokens:
            return None
        return column.match(" AND ".join(f'"{token}*"' for token in tokens))

    def is_full_text_unavailable(self, error: BaseException) -> bool:
        message = _error_text(error)
        if "contains" not in message and "freetext" not in message and "full-text" not in message:
            return False
        return any(signature in message for signature in self._UNAVAILABLE_SIGNATURES)


class OnConflictDialect(SqlDialect):
    """Stores with ``INSERT ... ON CONFLICT DO UPDATE`` (PostgreSQL, SQLite)."""

    row_overhead = 1

    def stage_sql(self, table, key_columns, columns, row_count) -> str:
        non_key = [column for column in columns if column not in key_columns]
        conflict_target = ", ".join(["ingestion_id", *key_columns])
        if non_key:
            action = "DO UPDATE SET " + ", ".join(f"{column} = excluded.{column}" for column in non_key)
        else:
            action = "DO NOTHING"

        values = ",\n    ".join(
            "(:ingestion_id, " + ", ".join(f":{column}_{index}" for column in columns) + ")"
            for index in range(row_count)
        )
        return (
            f"INSERT INTO {table} (ingestion_id, {', '.join(columns)})\n"
            f"VALUES\n    {values}\n"
            f"ON CONFLICT ({conflict_target}) {action}"
        )

    def merge_sql(self, plan: MergePlan) -> str:
        columns = [column for column, _ in plan.columns]
        expressions = ",\n    ".join(expression for _, expression in plan.columns)
        assignments = [f"{column} = excluded.{column}" for column in plan.update_columns]
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        # The WHERE clause also keeps SQLite from parsing ON CONFLICT as a join constraint
        return (
            f"INSERT INTO {plan.target} ({', '.join(columns)})\n"
            f"SELECT\n    {expressions}\n"
            f"FROM {plan.from_clause}\n"
            f"WHERE {self._where_clause(plan)}\n"
            f"ON CONFLICT ({', '.join(plan.key_columns)}) DO UPDATE SET {', '.join(assignments)}"
        )


class PostgresDialect(OnConflictDialect):
    name = "postgresql"
    parameter_limit = 65535

    def full_text_predicate(self, column, value):
        tokens = search_tokens(value)
        if not tokens:
            return None
        query = " & ".join(f"{token}:*" for token in tokens)
        config = literal_column("'simple'")
        return func.to_tsvector(config, column).bool_op("@@")(
            func.to_tsquery(config, bindparam(None, query))
        )

    def is_full_text_unavailable(self, error: BaseException) -> bool:
        message = _error_text(error)
        return "text search configuration" in message and "does not exist" in message


class SqliteDialect(OnConflictDialect):
    name = "sqlite"
    # Default SQLITE_MAX_VARIABLE_NUMBER before 3.32
    parameter_limit = 999

    def full_text_predicate(self, column, value):
        tokens = search_tokens(value)
        if not tokens:
            return None
        return column.match(" AND ".join(f"{token}*" for token in tokens))

    def is_full_text_unavailable(self, error: BaseException) -> bool:
        # MATCH on a column that is not part of an FTS virtual table
        message = _error_text(error)
        return "match" in message and (
            "unable to use function" in message or "no such function" in message
        )


_DIALECTS: dict[str, type[SqlDialect]] = {
    "mssql": SqlServerDialect,
    "postgresql": PostgresDialect,
    "sqlite": SqliteDialect,
}


def get_dialect(name: str) -> SqlDialect:
    """
    Return the strategy for a SQLAlchemy dialect name.

    Raises:
        UnsupportedDialectError: For stores without a supported upsert construct
    """
    try:
        return _DIALECTS[name.lower()]()
    except KeyError:
        raise UnsupportedDialectError(name) from None


def dialect_for_engine(engine: Engine, override: str | None = None) -> SqlDialect:
    """Pick the strategy from configuration, falling back to the engine's dialect."""
    return get_dialect(override or engine.dialect.name)


__all__ = [
    "MAX_ROWS_PER_STATEMENT",
    "MergePlan",
    "SqlDialect",
    "SqlServerDialect",
    "OnConflictDialect",
    "PostgresDialect",
    "SqliteDialect",
    "search_tokens",
    "get_dialect",
    "dialect_for_engine",
]
