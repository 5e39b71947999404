"""Pydantic base models."""

from __future__ import annotations

import pydantic
from pydantic.alias_generators import to_camel

__all__ = [
    'ApiModel',
    'ExternalModel',
    'StrictModel',
]


class StrictModel(pydantic.BaseModel):
    """Base model with strict validation.

    Config:
    - extra='forbid': Reject unknown fields (fail-fast)
    - strict=True: No implicit type coercion
    - frozen=True: Immutable after creation
    """

    model_config = pydantic.ConfigDict(
        extra='forbid',
        strict=True,
        frozen=True,
    )


class ExternalModel(pydantic.BaseModel):
    """Base for data the CLI produces. Ignores unknown fields.

    Lightweight projections: only the fields this package reads.
    """

    model_config = pydantic.ConfigDict(extra='ignore', frozen=True)


class ApiModel(StrictModel):
    """Browser-facing body: camelCase on the wire, snake_case in Python.

    FastAPI serializes response models by alias, so attribute names never leak.
    """

    model_config = pydantic.ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
