"""Shared Pydantic types and base classes for API request/response models."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    StringConstraints,
)
from pydantic.alias_generators import to_camel

ADDRESS_REGEX = r"^0x[a-fA-F0-9]{40}$"
MIN_TEXT_LENGTH = 3
MAX_TEXT_LENGTH = 3000


def _reject_script(value: str) -> str:
    if "<script>" in value.lower():
        raise ValueError("Text contains potentially harmful content")
    return value


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


UserText = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        min_length=MIN_TEXT_LENGTH,
        max_length=MAX_TEXT_LENGTH,
    ),
    AfterValidator(_reject_script),
]

EthereumAddress = Annotated[
    str,
    StringConstraints(strip_whitespace=True, pattern=ADDRESS_REGEX),
]

OptionalText = Annotated[UserText | None, BeforeValidator(_blank_to_none)]

OptionalAddress = Annotated[EthereumAddress | None, BeforeValidator(_blank_to_none)]

OptionalEmail = Annotated[EmailStr | None, BeforeValidator(_blank_to_none)]


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
