from __future__ import annotations

import logging
from typing import Any

from asyncpg import exceptions as pg_exc

from jobly.services.entity import EntityRepository
from jobly.services.repository import (
    PostgresRepository,
    RepositoryConflictError,
    RepositoryNotFoundError,
)
from jobly.services.sql import INT4_RANGE, FieldMapping

logger = logging.getLogger(__name__)

USER_FIELD_MAPPING = FieldMapping(
    {
        "firstName": "first_name",
        "lastName": "last_name",
        "isAdmin": "is_admin",
    }
)


class UserRepository(EntityRepository):
    entity_name = "user"
    plural_name = "users"
    table = "users"
    key_field = "username"
    fields = ("username", "firstName", "lastName", "email", "isAdmin")
    immutable_fields = frozenset({"username"})
    order_by = ("username",)

    def __init__(self, database: PostgresRepository, mapping: FieldMapping = USER_FIELD_MAPPING) -> None:
        super().__init__(database, mapping)

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._insert({"isAdmin": False, **data})

    async def get(self, key: Any) -> dict[str, Any]:
        """Return the user with the ids of the jobs they applied to."""
        user = await super().get(key)

        pool = await self.database.get_pool()
        rows = await pool.fetch(
            """
            SELECT "job_id"
            FROM "applications"
            WHERE "username" = $1
            ORDER BY "job_id"
            """,
            key,
        )
        user["jobs"] = [row["job_id"] for row in rows]
        return user

    async def is_admin(self, username: str) -> bool:
        """Return the stored admin flag; unknown users are Not-Found."""
        pool = await self.database.get_pool()
        row = await pool.fetchrow(
            """
            SELECT "is_admin"
            FROM "users"
            WHERE "username" = $1
            """,
            username,
        )
        if row is None:
            raise RepositoryNotFoundError(f"user not found: {username}")
        return bool(row["is_admin"])

    async def apply_to_job(self, username: str, job_id: int) -> int:
        low, high = INT4_RANGE
        if not low <= job_id <= high:
            raise RepositoryNotFoundError(f"job not found: {job_id}")

        pool = await self.database.get_pool()
        try:
            row = await pool.fetchrow(
                """
                INSERT INTO "applications" ("username", "job_id")
                VALUES ($1, $2)
                RETURNING "job_id"
                """,
                username,
                job_id,
            )
        except pg_exc.UniqueViolationError as exc:
            raise RepositoryConflictError(f"user {username} already applied to job {job_id}") from exc
        except pg_exc.ForeignKeyViolationError as exc:
            if "job_id" in (getattr(exc, "constraint_name", None) or ""):
                raise RepositoryNotFoundError(f"job not found: {job_id}") from exc
            raise RepositoryNotFoundError(f"user not found: {username}") from exc

        logger.info("user=%s applied to job=%s", username, job_id)
        return row["job_id"]
