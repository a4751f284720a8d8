from decimal import Decimal

from pydantic import Field

from jobly.schemas.base import CamelModel, CamelRequest


class JobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None
    company_handle: str


class JobCreateRequest(CamelRequest):
    title: str = Field(min_length=1)
    salary: int | None = Field(default=None, ge=0)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
    company_handle: str = Field(min_length=1, max_length=25)


class JobUpdateRequest(CamelRequest):
    title: str = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
