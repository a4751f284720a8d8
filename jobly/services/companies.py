from __future__ import annotations

from typing import Any

from jobly.services.entity import EntityRepository
from jobly.services.jobs import JOB_FIELD_MAPPING
from jobly.services.repository import PostgresRepository
from jobly.services.sql import FieldMapping, FilterKey, quote_identifier

COMPANY_FIELD_MAPPING = FieldMapping({"numEmployees": "num_employees", "logoUrl": "logo_url"})
COMPANY_FILTER_KEYS = (
    FilterKey("nameLike", "name", "contains"),
    FilterKey("minEmployees", "num_employees", "min"),
    FilterKey("maxEmployees", "num_employees", "max"),
)
COMPANY_JOB_FIELDS = ("id", "title", "salary", "equity")


class CompanyRepository(EntityRepository):
    entity_name = "company"
    plural_name = "companies"
    table = "companies"
    key_field = "handle"
    fields = ("handle", "name", "description", "numEmployees", "logoUrl")
    immutable_fields = frozenset({"handle"})
    order_by = ("name",)
    filter_keys = COMPANY_FILTER_KEYS

    def __init__(self, database: PostgresRepository, mapping: FieldMapping = COMPANY_FIELD_MAPPING) -> None:
        super().__init__(database, mapping)

    async def create(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._insert(data)

    async def get(self, key: Any) -> dict[str, Any]:
        """Return the company together with its jobs, ordered by id."""
        company = await super().get(key)

        pool = await self.database.get_pool()
        rows = await pool.fetch(
            f"""
            SELECT {JOB_FIELD_MAPPING.select_list(COMPANY_JOB_FIELDS)}
            FROM "jobs"
            WHERE {quote_identifier(JOB_FIELD_MAPPING.translate("companyHandle"))} = $1
            ORDER BY "id"
            """,
            key,
        )
        company["jobs"] = [dict(row) for row in rows]
        return company
