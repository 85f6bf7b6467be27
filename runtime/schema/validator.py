"""Schema validator: check untrusted tool arguments against a contract.

Arguments are checked with jsonschema against the Draft 7 rendering of
the contract's input schema.  ``validate`` never raises for malformed
input.  It always returns a ValidationResult so the agent loop can hand
structured feedback back to the model and let it correct itself.
"""

from __future__ import annotations

import copy
import json
import math
import re
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from jsonschema import Draft7Validator, FormatChecker
from jsonschema.exceptions import ValidationError
from jsonschema.validators import extend

from contracts.schema import ArraySchema, FieldSchema, NumberSchema, ObjectSchema
from contracts.tool import ToolContract
from contracts.validation import ValidationResult, Violation
from runtime.schema.translator import to_validation_schema

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


# ── jsonschema dialect ──────────────────────────────────────────────


def _is_finite_number(checker: Any, instance: Any) -> bool:
    if not Draft7Validator.TYPE_CHECKER.is_type(instance, "number"):
        return False
    return isinstance(instance, int) or math.isfinite(instance)


# Draft 7 already refuses booleans as numbers and accepts 7.0 as an integer.
ArgumentDraft = extend(
    Draft7Validator,
    type_checker=Draft7Validator.TYPE_CHECKER.redefine("number", _is_finite_number),
)

FORMATS = FormatChecker(formats=())


@FORMATS.checks("email")
def _is_email(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    return _EMAIL_RE.match(instance) is not None


@FORMATS.checks("date-time", raises=ValueError)
def _is_date_time(instance: object) -> bool:
    if not isinstance(instance, str):
        return True
    datetime.fromisoformat(instance.replace("Z", "+00:00"))
    return True


# ── validation ──────────────────────────────────────────────────────


class ArgumentValidator:
    """Compiled checker for one contract's arguments.

    Built once per contract when the registry accepts it.
    """

    def __init__(self, contract: ToolContract) -> None:
        self._schema = contract.input_schema
        self._document = to_validation_schema(contract.input_schema)
        ArgumentDraft.check_schema(self._document)
        self._checker = ArgumentDraft(self._document, format_checker=FORMATS)

    @property
    def document(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    def validate(self, raw_arguments: Any) -> ValidationResult:
        """Return the normalized arguments, or every violation sorted by path.

        Normalized means declared fields only, in declaration order, with
        defaults filled in and integral floats turned into ints.
        """
        arguments, root_violation = _coerce_root(raw_arguments)
        if root_violation is not None:
            return ValidationResult.failure([root_violation])

        arguments = _prune(self._schema, arguments)
        violations = _violations(self._checker.iter_errors(arguments))
        if violations:
            return ValidationResult.failure(violations)
        return ValidationResult.success(_normalize(self._schema, arguments))


def validate(contract: ToolContract, raw_arguments: Any) -> ValidationResult:
    """Validate *raw_arguments* against the contract's input schema."""
    return ArgumentValidator(contract).validate(raw_arguments)


def validate_value(schema: FieldSchema, value: Any, path: str = "") -> list[Violation]:
    """Validate a single value against one field schema."""
    checker = ArgumentDraft(to_validation_schema(schema), format_checker=FORMATS)
    return _violations(checker.iter_errors(_prune(schema, value)), prefix=path)


# ── root handling ───────────────────────────────────────────────────


def _coerce_root(raw: Any) -> tuple[Any, Violation | None]:
    if raw is None:
        return {}, None
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
            return None, Violation(
                path="",
                constraint="invalid_json",
                message=f"arguments are not valid JSON ({type(exc).__name__})",
            )
    if not isinstance(raw, dict):
        return None, Violation(
            path="",
            constraint="type",
            message=f"arguments must be an object, got {_type_name(raw)}",
        )
    return raw, None


# ── shaping around the checker ──────────────────────────────────────


def _prune(schema: FieldSchema, value: Any) -> Any:
    """Drop undeclared keys and nulls; a null counts as an absent field."""
    if isinstance(schema, ObjectSchema) and isinstance(value, dict):
        return {
            name: _prune(field, value[name])
            for name, field in schema.properties.items()
            if value.get(name) is not None
        }
    if isinstance(schema, ArraySchema) and isinstance(value, (list, tuple)):
        return [_prune(schema.items, item) for item in value]
    return value


def _normalize(schema: FieldSchema, value: Any) -> Any:
    if isinstance(schema, ObjectSchema):
        out: dict[str, Any] = {}
        for name, field in schema.properties.items():
            if name in value:
                out[name] = _normalize(field, value[name])
            elif field.has_default:
                out[name] = copy.deepcopy(field.default)
        return out
    if isinstance(schema, ArraySchema):
        return [_normalize(schema.items, item) for item in value]
    if isinstance(schema, NumberSchema) and schema.integer and isinstance(value, float):
        return int(value)
    return value


def _violations(errors: Iterable[ValidationError], prefix: str = "") -> list[Violation]:
    violations: list[Violation] = []
    required_seen: set[str] = set()
    for error in sorted(errors, key=lambda e: list(e.path)):
        path = _format_path(prefix, error.path)
        if error.validator == "required":
            # one error per missing name; report them all, under the field's own path
            if path in required_seen:
                continue
            required_seen.add(path)
            for name in error.validator_value:
                if name not in error.instance:
                    violations.append(
                        Violation(
                            path=_format_path(path, [name]),
                            constraint="required",
                            message="is required",
                        )
                    )
            continue
        violations.append(
            Violation(path=path, constraint=str(error.validator), message=error.message)
        )
    return violations


def _format_path(prefix: str, parts: Iterable[str | int]) -> str:
    path = prefix
    for part in parts:
        if isinstance(part, int):
            path = f"{path}[{part}]"
        else:
            path = f"{path}.{part}" if path else part
    return path


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "number"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__
