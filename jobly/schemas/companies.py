from decimal import Decimal

from pydantic import Field

from jobly.schemas.base import CamelModel, CamelRequest


class CompanyOut(CamelModel):
    handle: str
    name: str
    description: str
    num_employees: int | None = None
    logo_url: str | None = None


class CompanyJobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None


class CompanyDetailOut(CompanyOut):
    jobs: list[CompanyJobOut] = Field(default_factory=list)


class CompanyCreateRequest(CamelRequest):
    handle: str = Field(min_length=1, max_length=25, pattern=r"^[a-z0-9-]+$")
    name: str = Field(min_length=1)
    description: str
    num_employees: int | None = Field(default=None, ge=0)
    logo_url: str | None = None


class CompanyUpdateRequest(CamelRequest):
    name: str = Field(default=None, min_length=1)
    description: str = Field(default=None)
    num_employees: int | None = Field(default=None, ge=0)
    logo_url: str | None = None
