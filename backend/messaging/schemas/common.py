"""Common API schema helpers."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case fields exposed to clients with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DeleteResult(CamelModel):
    """Generic delete response payload."""

    id: int
    deleted: bool
