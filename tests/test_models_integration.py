from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable, Coroutine
from decimal import Decimal
from pathlib import Path
from typing import Any, TypeVar

import asyncpg  # type: ignore[import-untyped]
import pytest

from jobly.services.companies import CompanyRepository
from jobly.services.jobs import JobRepository
from jobly.services.repository import (
    PostgresRepository,
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryValidationError,
)
from jobly.services.users import UserRepository

SCHEMA_PATH = Path(__file__).resolve().parents[1] / "db" / "schema.sql"

T = TypeVar("T")


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.getenv("JOBLY_DATABASE_URL") or os.getenv("DATABASE_URL")
    if not url:
        pytest.skip("integration tests require JOBLY_DATABASE_URL or DATABASE_URL")
    return url


@pytest.fixture(autouse=True)
def seeded(database_url: str) -> None:
    _run(_reset_and_seed(database_url))


def _run(coro: Coroutine[Any, Any, T]) -> T:
    return asyncio.run(coro)


async def _reset_and_seed(database_url: str) -> None:
    conn = await asyncpg.connect(database_url)
    try:
        await conn.execute(SCHEMA_PATH.read_text())
        await conn.execute("truncate applications, jobs, users, companies restart identity cascade")
        await conn.executemany(
            "insert into companies (handle, name, num_employees, description, logo_url) values ($1, $2, $3, $4, $5)",
            [
                ("c1", "C1", 1, "Desc1", "http://c1.img"),
                ("c2", "C2", 2, "Desc2", "http://c2.img"),
                ("c3", "C3", 3, "Desc3", "http://c3.img"),
            ],
        )
        await conn.executemany(
            "insert into jobs (title, salary, equity, company_handle) values ($1, $2, $3, $4)",
            [
                ("CEO", 500000, Decimal("0.27"), "c1"),
                ("CFO", 400000, Decimal("0.10"), "c2"),
                ("Receptionist", 50000, Decimal("0"), "c1"),
            ],
        )
        await conn.executemany(
            "insert into users (username, first_name, last_name, email, is_admin) values ($1, $2, $3, $4, $5)",
            [
                ("u1", "U1F", "U1L", "u1@email.com", True),
                ("u2", "U2F", "U2L", "u2@email.com", False),
            ],
        )
    finally:
        await conn.close()


def _with_repositories(
    database_url: str,
    scenario: Callable[[CompanyRepository, JobRepository, UserRepository], Awaitable[T]],
) -> T:
    async def _go() -> T:
        database = PostgresRepository(database_url=database_url, min_pool_size=1, max_pool_size=2)
        try:
            return await scenario(CompanyRepository(database), JobRepository(database), UserRepository(database))
        finally:
            await database.close()

    return _run(_go())


async def _job_id(jobs: JobRepository, title: str) -> int:
    for job in await jobs.find_all():
        if job["title"] == title:
            return job["id"]
    raise AssertionError(f"seed job {title} missing")


def test_create_job_round_trips_through_get(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> tuple[dict, dict]:
        created = await jobs.create({"title": "new", "salary": 90000, "equity": 0, "companyHandle": "c3"})
        return created, await jobs.get(created["id"])

    created, fetched = _with_repositories(database_url, scenario)
    assert isinstance(created["id"], int)
    assert created["equity"] == Decimal("0")
    assert fetched == created


def test_create_job_for_missing_company_is_not_found(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> None:
        await jobs.create({"title": "ghost", "companyHandle": "nope"})

    with pytest.raises(RepositoryNotFoundError):
        _with_repositories(database_url, scenario)


def test_find_all_jobs(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> list[dict]:
        return await jobs.find_all()

    rows = _with_repositories(database_url, scenario)
    assert [(row["title"], row["salary"], row["equity"], row["companyHandle"]) for row in rows] == [
        ("CEO", 500000, Decimal("0.27"), "c1"),
        ("CFO", 400000, Decimal("0.10"), "c2"),
        ("Receptionist", 50000, Decimal("0"), "c1"),
    ]


def test_find_filtered_jobs(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> tuple[list, list, list]:
        return (
            await jobs.find_filtered({"title": "ceo", "minSalary": 450000, "hasEquity": True}),
            await jobs.find_filtered({"title": "c", "minSalary": 400000}),
            await jobs.find_filtered({"title": "ce", "minSalary": 100000}),
        )

    strict, broad, scenario_rows = _with_repositories(database_url, scenario)
    assert [row["title"] for row in strict] == ["CEO"]
    assert [row["title"] for row in broad] == ["CEO", "CFO"]
    assert [row["title"] for row in scenario_rows] == ["CEO"]


def test_find_filtered_without_match_is_not_found(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> None:
        await jobs.find_filtered({"title": "sailor"})

    with pytest.raises(RepositoryNotFoundError):
        _with_repositories(database_url, scenario)


def test_find_filtered_empty_request_matches_find_all(database_url: str) -> None:
    async def scenario(companies: CompanyRepository, _jobs, _users) -> tuple[list, list]:
        return await companies.find_filtered({}), await companies.find_all()

    filtered, everything = _with_repositories(database_url, scenario)
    assert filtered == everything


def test_find_filtered_companies_by_size(database_url: str) -> None:
    async def scenario(companies: CompanyRepository, _jobs, _users) -> list[dict]:
        return await companies.find_filtered({"nameLike": "c", "minEmployees": "2", "maxEmployees": "3"})

    rows = _with_repositories(database_url, scenario)
    assert [row["handle"] for row in rows] == ["c2", "c3"]


def test_update_job(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> tuple[dict, dict]:
        job_id = await _job_id(jobs, "CEO")
        updated = await jobs.update(job_id, {"title": "New Title", "salary": 450000, "equity": 0.2})
        return updated, await jobs.get(job_id)

    updated, fetched = _with_repositories(database_url, scenario)
    assert updated == fetched
    assert updated["title"] == "New Title"
    assert updated["salary"] == 450000
    assert updated["equity"] == Decimal("0.2")
    assert updated["companyHandle"] == "c1"


def test_update_missing_job_is_not_found(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> None:
        await jobs.update(0, {"title": "x"})

    with pytest.raises(RepositoryNotFoundError):
        _with_repositories(database_url, scenario)


def test_update_with_equity_above_one_is_bad_request(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> None:
        await jobs.update(await _job_id(jobs, "CFO"), {"equity": 1.5})

    with pytest.raises(RepositoryValidationError):
        _with_repositories(database_url, scenario)


def test_remove_job_and_missing_job(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, _users) -> list[dict]:
        await jobs.remove(await _job_id(jobs, "CEO"))
        return await jobs.find_all()

    remaining = _with_repositories(database_url, scenario)
    assert [row["title"] for row in remaining] == ["CFO", "Receptionist"]

    async def missing(_companies, jobs: JobRepository, _users) -> None:
        await jobs.remove(0)

    with pytest.raises(RepositoryNotFoundError):
        _with_repositories(database_url, missing)


def test_company_get_lists_jobs_and_duplicate_create_conflicts(database_url: str) -> None:
    async def scenario(companies: CompanyRepository, _jobs, _users) -> dict:
        return await companies.get("c1")

    company = _with_repositories(database_url, scenario)
    assert company["numEmployees"] == 1
    assert company["logoUrl"] == "http://c1.img"
    assert [job["title"] for job in company["jobs"]] == ["CEO", "Receptionist"]

    async def duplicate(companies: CompanyRepository, _jobs, _users) -> None:
        await companies.create({"handle": "c1", "name": "C1 again", "description": "dup"})

    with pytest.raises(RepositoryConflictError):
        _with_repositories(database_url, duplicate)


def test_user_update_and_applications(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, users: UserRepository) -> tuple[dict, dict]:
        job_id = await _job_id(jobs, "CFO")
        await users.apply_to_job("u2", job_id)
        updated = await users.update("u2", {"firstName": "New"})
        return updated, await users.get("u2")

    updated, fetched = _with_repositories(database_url, scenario)
    assert updated["firstName"] == "New"
    assert updated["lastName"] == "U2L"
    assert len(fetched["jobs"]) == 1


def test_apply_to_missing_job_is_not_found(database_url: str) -> None:
    async def scenario(_companies, _jobs, users: UserRepository) -> None:
        await users.apply_to_job("u1", 0)

    with pytest.raises(RepositoryNotFoundError, match="job not found"):
        _with_repositories(database_url, scenario)


def test_admin_flag_and_out_of_range_job_id(database_url: str) -> None:
    async def scenario(_companies, jobs: JobRepository, users: UserRepository) -> tuple[bool, bool]:
        with pytest.raises(RepositoryNotFoundError):
            await jobs.get(2**31)
        return await users.is_admin("u1"), await users.is_admin("u2")

    assert _with_repositories(database_url, scenario) == (True, False)
