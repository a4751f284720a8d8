from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Payloads use camelCase on the wire and snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelRequest(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def to_update(self) -> dict:
        return self.model_dump(by_alias=True, exclude_unset=True)

    def to_create(self) -> dict:
        return self.model_dump(by_alias=True)


class DeletedOut(BaseModel):
    deleted: str
