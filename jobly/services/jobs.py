from __future__ import annotations

from decimal import Decimal
from typing import Any

from asyncpg import exceptions as pg_exc

from jobly.services.entity import EntityRepository
from jobly.services.repository import PostgresRepository
from jobly.services.sql import INT4_RANGE, FieldMapping, FilterKey

JOB_FIELD_MAPPING = FieldMapping({"companyHandle": "company_handle"})
JOB_FILTER_KEYS = (
    FilterKey("title", "title", "contains"),
    FilterKey("minSalary", "salary", "min"),
    FilterKey("hasEquity", "equity", "flag"),
)


class JobRepository(EntityRepository):
    entity_name = "job"
    plural_name = "jobs"
    table = "jobs"
    key_field = "id"
    fields = ("id", "title", "salary", "equity", "companyHandle")
    # A job may not be moved to another company.
    immutable_fields = frozenset({"id", "companyHandle"})
    order_by = ("title", "id")
    filter_keys = JOB_FILTER_KEYS
    key_range = INT4_RANGE

    def __init__(self, database: PostgresRepository, mapping: FieldMapping = JOB_FIELD_MAPPING) -> None:
        super().__init__(database, mapping)

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a job; ``data`` holds title, salary, equity and companyHandle."""
        return await self._insert({name: value for name, value in data.items() if name != "id"})

    def prepare_values(self, data: dict[str, Any]) -> dict[str, Any]:
        equity = data.get("equity")
        if equity is None or isinstance(equity, Decimal):
            return data
        return {**data, "equity": Decimal(str(equity))}

    def _describe_missing_reference(self, exc: pg_exc.ForeignKeyViolationError) -> str:
        return "company not found for job"
