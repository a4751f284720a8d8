from pydantic import Field

from jobly.schemas.base import CamelModel, CamelRequest

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+$"


class UserOut(CamelModel):
    username: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool = False


class UserDetailOut(UserOut):
    jobs: list[int] = Field(default_factory=list)


class UserCreateRequest(CamelRequest):
    username: str = Field(min_length=1, max_length=25)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: str = Field(pattern=EMAIL_PATTERN)
    is_admin: bool = False


class UserUpdateRequest(CamelRequest):
    first_name: str = Field(default=None, min_length=1)
    last_name: str = Field(default=None, min_length=1)
    email: str = Field(default=None, pattern=EMAIL_PATTERN)


class ApplicationOut(CamelModel):
    applied: int
