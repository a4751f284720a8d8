from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
import logging
from typing import Any

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc

from jobly.services.repository import (
    PostgresRepository,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)
from jobly.services.sql import (
    FieldMapping,
    FilterKey,
    build_filter_predicate,
    build_set_clause,
    quote_identifier,
)

logger = logging.getLogger(__name__)


class EntityRepository:
    """CRUD over one table, speaking external field names on both sides.

    Subclasses declare the table shape; the field mapping is injected so the
    repository is the only place external and internal names meet.
    """

    entity_name: str = "entity"
    plural_name: str = "entities"
    table: str = ""
    key_field: str = "id"
    fields: tuple[str, ...] = ()
    immutable_fields: frozenset[str] = frozenset()
    order_by: tuple[str, ...] = ()
    filter_keys: tuple[FilterKey, ...] = ()
    # Integer keys outside this range cannot exist in the table.
    key_range: tuple[int, int] | None = None

    def __init__(self, database: PostgresRepository, mapping: FieldMapping) -> None:
        self.database = database
        self.mapping = mapping

    async def find_all(self) -> list[dict[str, Any]]:
        pool = await self.database.get_pool()
        rows = await pool.fetch(
            f"""
            SELECT {self._select_list()}
            FROM {quote_identifier(self.table)}
            ORDER BY {self._order_by()}
            """
        )
        return [dict(row) for row in rows]

    async def find_filtered(self, filters: Mapping[str, Any]) -> list[dict[str, Any]]:
        predicate = build_filter_predicate(filters, self.filter_keys)
        if not predicate:
            return await self.find_all()

        pool = await self.database.get_pool()
        rows = await pool.fetch(
            f"""
            SELECT {self._select_list()}
            FROM {quote_identifier(self.table)}
            {predicate.where_clause}
            ORDER BY {self._order_by()}
            """,
            *predicate.values,
        )
        if not rows:
            logger.debug("no %s matched filters=%s", self.plural_name, sorted(filters))
            raise RepositoryNotFoundError(f"no {self.plural_name} match the given filters")
        return [dict(row) for row in rows]

    async def get(self, key: Any) -> dict[str, Any]:
        self._require_key_in_range(key)
        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            f"""
            SELECT {self._select_list()}
            FROM {quote_identifier(self.table)}
            WHERE {self._key_column()} = $1
            """,
            key,
        )
        if row is None:
            raise RepositoryNotFoundError(f"{self.entity_name} not found: {key}")
        return dict(row)

    async def update(self, key: Any, data: Mapping[str, Any]) -> dict[str, Any]:
        """Apply a partial update and return the entity as stored afterwards."""
        payload = dict(data)
        immutable = [name for name in payload if name in self.immutable_fields]
        if immutable:
            raise RepositoryValidationError(f"cannot update {self.entity_name} fields: {', '.join(immutable)}")
        unknown = [name for name in payload if name not in self.fields]
        if unknown:
            raise RepositoryValidationError(f"unknown {self.entity_name} fields: {', '.join(unknown)}")

        set_clause = build_set_clause(self.prepare_values(payload), self.mapping)
        key_placeholder = f"${len(set_clause.values) + 1}"
        self._require_key_in_range(key)

        pool = await self.database.get_pool()
        with self._store_errors(key):
            row = await pool.fetchrow(
                f"""
                UPDATE {quote_identifier(self.table)}
                SET {set_clause.clause}
                WHERE {self._key_column()} = {key_placeholder}
                RETURNING {self._select_list()}
                """,
                *set_clause.values,
                key,
            )
        if row is None:
            raise RepositoryNotFoundError(f"{self.entity_name} not found: {key}")

        logger.info("updated %s key=%s fields=%s", self.entity_name, key, list(payload))
        return dict(row)

    async def remove(self, key: Any) -> None:
        self._require_key_in_range(key)
        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            f"""
            DELETE FROM {quote_identifier(self.table)}
            WHERE {self._key_column()} = $1
            RETURNING {self._key_column()}
            """,
            key,
        )
        if row is None:
            raise RepositoryNotFoundError(f"{self.entity_name} not found: {key}")
        logger.info("removed %s key=%s", self.entity_name, key)

    def prepare_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """Hook for coercing values into the store's native representation."""
        return data

    async def _insert(self, data: Mapping[str, Any]) -> dict[str, Any]:
        payload = self.prepare_values({name: data[name] for name in self.fields if name in data})
        if not payload:
            raise RepositoryValidationError("No data")

        columns = ", ".join(quote_identifier(self.mapping.translate(name)) for name in payload)
        placeholders = ", ".join(f"${position}" for position in range(1, len(payload) + 1))
        key = payload.get(self.key_field)

        pool = await self.database.get_pool()
        with self._store_errors(key):
            row = await pool.fetchrow(
                f"""
                INSERT INTO {quote_identifier(self.table)} ({columns})
                VALUES ({placeholders})
                RETURNING {self._select_list()}
                """,
                *payload.values(),
            )

        created = dict(row)
        logger.info("created %s key=%s", self.entity_name, created.get(self.key_field))
        return created

    @contextmanager
    def _store_errors(self, key: Any) -> Iterator[None]:
        try:
            yield
        except pg_exc.UniqueViolationError as exc:
            constraint = getattr(exc, "constraint_name", None)
            logger.debug("duplicate %s key=%s constraint=%s", self.entity_name, key, constraint)
            raise RepositoryConflictError(f"duplicate {self.entity_name}: {key}") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            raise RepositoryNotFoundError(self._describe_missing_reference(exc)) from exc
        except (pg_exc.CheckViolationError, pg_exc.NotNullViolationError, asyncpg.DataError) as exc:
            raise RepositoryValidationError(f"invalid {self.entity_name} data") from exc

    def _describe_missing_reference(self, exc: pg_exc.ForeignKeyViolationError) -> str:
        return f"referenced record for {self.entity_name} not found"

    def _require_key_in_range(self, key: Any) -> None:
        if self.key_range is None or isinstance(key, bool) or not isinstance(key, int):
            return
        low, high = self.key_range
        if not low <= key <= high:
            raise RepositoryNotFoundError(f"{self.entity_name} not found: {key}")

    def _select_list(self) -> str:
        return self.mapping.select_list(self.fields)

    def _key_column(self) -> str:
        return quote_identifier(self.mapping.translate(self.key_field))

    def _order_by(self) -> str:
        return ", ".join(quote_identifier(self.mapping.translate(name)) for name in self.order_by)
