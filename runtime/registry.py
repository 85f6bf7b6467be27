"""Tool registry: register, look up, and advertise tool contracts.

Populated once at startup and then frozen; lookups take no locks.
"""

from __future__ import annotations

import copy
from collections.abc import Iterator
from typing import Any

from jsonschema import Draft7Validator
from jsonschema.exceptions import SchemaError

from contracts.errors import (
    DuplicateToolNameError,
    RegistryFrozenError,
    ToolNotFoundError,
    UnsatisfiableSchemaError,
)
from contracts.schema import ArraySchema, FieldSchema, ObjectSchema
from contracts.settings import ProviderFormat
from contracts.tool import ToolCategory, ToolContract
from runtime.schema.translator import to_external_schema, to_openai_definition
from runtime.schema.validator import ArgumentValidator, validate_value


class ToolRegistry:
    """In-memory catalog of tool contracts, keyed by name."""

    def __init__(self, provider_format: ProviderFormat = ProviderFormat.ANTHROPIC) -> None:
        self._provider_format = provider_format
        self._contracts: dict[str, ToolContract] = {}
        self._documents: dict[str, dict[str, Any]] = {}
        self._validators: dict[str, ArgumentValidator] = {}
        self._frozen = False

    def register(self, contract: ToolContract) -> None:
        """Register a contract.

        Fails fast on duplicate names, on schemas the provider cannot
        express, and on defaults that violate their own field.
        """
        if self._frozen:
            raise RegistryFrozenError(contract.name)
        if contract.name in self._contracts:
            raise DuplicateToolNameError(contract.name)

        if self._provider_format == ProviderFormat.OPENAI:
            document = to_openai_definition(contract)
            json_schema = document["function"]["parameters"]
        else:
            document = to_external_schema(contract)
            json_schema = document["input_schema"]

        try:
            Draft7Validator.check_schema(json_schema)
            validator = ArgumentValidator(contract)
        except SchemaError as exc:
            raise UnsatisfiableSchemaError(contract.name, exc.message) from exc
        _check_defaults(contract)

        self._contracts[contract.name] = contract
        self._documents[contract.name] = document
        self._validators[contract.name] = validator

    def freeze(self) -> None:
        """End the startup phase; further registration is an error."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> ToolContract:
        """Return a contract by name, or raise ``ToolNotFoundError``."""
        try:
            return self._contracts[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def find(self, name: str) -> ToolContract | None:
        return self._contracts.get(name)

    def list_tools(self) -> list[str]:
        """Return sorted list of registered tool names."""
        return sorted(self._contracts)

    def list_by_category(self, category: ToolCategory) -> list[ToolContract]:
        return [c for c in self._contracts.values() if c.category == category]

    def validator(self, name: str) -> ArgumentValidator:
        """Compiled argument checker for a registered contract."""
        try:
            return self._validators[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def external_schema(self, name: str) -> dict[str, Any]:
        if name not in self._documents:
            raise ToolNotFoundError(name)
        return copy.deepcopy(self._documents[name])

    def all_external_schemas(self) -> list[dict[str, Any]]:
        """Export every tool in the provider's tool-calling format, by name."""
        return [copy.deepcopy(self._documents[name]) for name in sorted(self._documents)]

    def __contains__(self, name: object) -> bool:
        return name in self._contracts

    def __len__(self) -> int:
        return len(self._contracts)

    def __iter__(self) -> Iterator[ToolContract]:
        return iter(list(self._contracts.values()))


def create_default_registry(
    provider_format: ProviderFormat = ProviderFormat.ANTHROPIC,
) -> ToolRegistry:
    """Create a frozen registry pre-loaded with the built-in catalogue."""
    from runtime.catalog import SUPPORT_AGENT_CONTRACTS

    registry = ToolRegistry(provider_format)
    for contract in SUPPORT_AGENT_CONTRACTS:
        registry.register(contract)
    registry.freeze()
    return registry


def _check_defaults(contract: ToolContract) -> None:
    for path, field in _walk(contract.input_schema, ""):
        if not field.has_default:
            continue
        violations = validate_value(field, field.default, path)
        if violations:
            detail = "; ".join(f"{v.path}: {v.message}" for v in violations)
            raise UnsatisfiableSchemaError(contract.name, f"default violates schema ({detail})")


def _walk(schema: FieldSchema, path: str) -> Iterator[tuple[str, FieldSchema]]:
    yield path, schema
    if isinstance(schema, ObjectSchema):
        for name, field in schema.properties.items():
            yield from _walk(field, f"{path}.{name}" if path else name)
    elif isinstance(schema, ArraySchema):
        yield from _walk(schema.items, f"{path}[]")
