"""Structural argument schemas for tool contracts.

A schema is a tagged variant (``kind``) of immutable models.  The runtime
validates raw tool arguments against it and translates it into the
provider's JSON-schema dialect; provider vocabulary never appears here.

Contradictory constraints (min > max, empty enums, ...) are rejected when
the model is constructed.
"""

from __future__ import annotations

import math
import re
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


StringFormat = Literal["email", "date-time"]


class _BaseSchema(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    description: str = ""
    optional: bool = False
    default: Any = None

    @property
    def has_default(self) -> bool:
        return self.default is not None

    @property
    def is_required(self) -> bool:
        """A field is required unless it is optional or carries a default."""
        return not self.optional and not self.has_default


# ── Scalar kinds ────────────────────────────────────────────────────


class StringSchema(_BaseSchema):
    kind: Literal["string"] = "string"
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None
    format: StringFormat | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> StringSchema:
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(
                f"min_length ({self.min_length}) exceeds max_length ({self.max_length})"
            )
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {self.pattern!r}: {exc}") from exc
        return self


class NumberSchema(_BaseSchema):
    kind: Literal["number"] = "number"
    minimum: float | None = None
    maximum: float | None = None
    integer: bool = False

    @model_validator(mode="after")
    def _check_bounds(self) -> NumberSchema:
        for bound in (self.minimum, self.maximum):
            if bound is not None and not math.isfinite(bound):
                raise ValueError("numeric bounds must be finite")
        if self.minimum is not None and self.maximum is not None:
            if self.minimum > self.maximum:
                raise ValueError(
                    f"minimum ({self.minimum}) exceeds maximum ({self.maximum})"
                )
            if self.integer and math.floor(self.maximum) < math.ceil(self.minimum):
                raise ValueError(
                    f"no integer lies between {self.minimum} and {self.maximum}"
                )
        return self


class BooleanSchema(_BaseSchema):
    kind: Literal["boolean"] = "boolean"


class EnumSchema(_BaseSchema):
    kind: Literal["enum"] = "enum"
    values: list[str]

    @model_validator(mode="after")
    def _check_values(self) -> EnumSchema:
        if not self.values:
            raise ValueError("enum must declare at least one value")
        if len(set(self.values)) != len(self.values):
            raise ValueError(f"enum values must be unique: {self.values}")
        return self


# ── Composite kinds ─────────────────────────────────────────────────


class ArraySchema(_BaseSchema):
    kind: Literal["array"] = "array"
    items: FieldSchema
    min_items: int | None = Field(default=None, ge=0)
    max_items: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> ArraySchema:
        if (
            self.min_items is not None
            and self.max_items is not None
            and self.min_items > self.max_items
        ):
            raise ValueError(
                f"min_items ({self.min_items}) exceeds max_items ({self.max_items})"
            )
        return self


class ObjectSchema(_BaseSchema):
    kind: Literal["object"] = "object"
    properties: dict[str, FieldSchema] = {}

    def required_names(self) -> list[str]:
        """Names of required properties, in declaration order."""
        return [name for name, f in self.properties.items() if f.is_required]


class UnionSchema(_BaseSchema):
    """Accepted by the model layer but not translatable to the provider."""

    kind: Literal["union"] = "union"
    variants: list[FieldSchema]

    @model_validator(mode="after")
    def _check_variants(self) -> UnionSchema:
        if len(self.variants) < 2:
            raise ValueError("union must declare at least two variants")
        return self


FieldSchema = Annotated[
    Union[
        StringSchema,
        NumberSchema,
        BooleanSchema,
        EnumSchema,
        ArraySchema,
        ObjectSchema,
        UnionSchema,
    ],
    Field(discriminator="kind"),
]

ArraySchema.model_rebuild()
ObjectSchema.model_rebuild()
UnionSchema.model_rebuild()


# ── Builders ────────────────────────────────────────────────────────


def string(
    description: str = "",
    *,
    optional: bool = False,
    default: str | None = None,
    min_length: int | None = None,
    max_length: int | None = None,
    pattern: str | None = None,
    format: StringFormat | None = None,
) -> StringSchema:
    return StringSchema(
        description=description,
        optional=optional,
        default=default,
        min_length=min_length,
        max_length=max_length,
        pattern=pattern,
        format=format,
    )


def number(
    description: str = "",
    *,
    optional: bool = False,
    default: float | None = None,
    minimum: float | None = None,
    maximum: float | None = None,
) -> NumberSchema:
    return NumberSchema(
        description=description,
        optional=optional,
        default=default,
        minimum=minimum,
        maximum=maximum,
    )


def integer(
    description: str = "",
    *,
    optional: bool = False,
    default: int | None = None,
    minimum: int | None = None,
    maximum: int | None = None,
) -> NumberSchema:
    return NumberSchema(
        description=description,
        optional=optional,
        default=default,
        minimum=minimum,
        maximum=maximum,
        integer=True,
    )


def boolean(
    description: str = "", *, optional: bool = False, default: bool | None = None
) -> BooleanSchema:
    return BooleanSchema(description=description, optional=optional, default=default)


def enum(
    values: list[str],
    description: str = "",
    *,
    optional: bool = False,
    default: str | None = None,
) -> EnumSchema:
    return EnumSchema(
        values=list(values), description=description, optional=optional, default=default
    )


def array(
    items: FieldSchema,
    description: str = "",
    *,
    optional: bool = False,
    min_items: int | None = None,
    max_items: int | None = None,
) -> ArraySchema:
    return ArraySchema(
        items=items,
        description=description,
        optional=optional,
        min_items=min_items,
        max_items=max_items,
    )


def obj(
    properties: dict[str, FieldSchema],
    description: str = "",
    *,
    optional: bool = False,
) -> ObjectSchema:
    return ObjectSchema(properties=dict(properties), description=description, optional=optional)


def one_of(*variants: FieldSchema, description: str = "", optional: bool = False) -> UnionSchema:
    return UnionSchema(variants=list(variants), description=description, optional=optional)
