from fastapi import Depends

from jobly.services.companies import CompanyRepository
from jobly.services.jobs import JobRepository
from jobly.services.repository import PostgresRepository, get_repository
from jobly.services.users import UserRepository


def get_company_repository(repository: PostgresRepository = Depends(get_repository)) -> CompanyRepository:
    return CompanyRepository(repository)


def get_job_repository(repository: PostgresRepository = Depends(get_repository)) -> JobRepository:
    return JobRepository(repository)


def get_user_repository(repository: PostgresRepository = Depends(get_repository)) -> UserRepository:
    return UserRepository(repository)
