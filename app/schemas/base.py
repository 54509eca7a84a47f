# app/schemas/base.py
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value


class RequestModel(BaseModel):
    """Inbound payload: camelCase keys, unknown keys rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class BaseDTO(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @classmethod  # every DTO declares its own mapping
    def from_orm_model(cls, orm_obj):
        raise NotImplementedError(
            f"{cls.__name__}.from_orm_model() must be implemented"
        )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")
