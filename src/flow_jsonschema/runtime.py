"""Runtime support for generated validator modules."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import jsonschema
from jsonschema import Draft7Validator


@dataclass(frozen=True)
class ErrorRecord:
    """One validation failure, flattened from the jsonschema error."""

    keyword: str
    data_path: str
    schema_path: str
    params: dict[str, Any]
    message: str

    @classmethod
    def from_jsonschema(cls, error: jsonschema.ValidationError) -> ErrorRecord:
        data_path = "".join(
            f"[{part}]" if isinstance(part, int) else f".{part}" for part in error.absolute_path
        )
        schema_path = "#/" + "/".join(str(part) for part in error.absolute_schema_path)
        return cls(
            keyword=str(error.validator),
            data_path=data_path,
            schema_path=schema_path,
            params={str(error.validator): error.validator_value},
            message=error.message,
        )


class ValidationError(ValueError):
    """Raised by ``assert<Name>`` helpers when a value does not match its type."""

    def __init__(self, type_name: str, errors: Iterable[ErrorRecord]):
        self.type_name = type_name
        self.errors = list(errors)
        if self.errors:
            first = self.errors[0]
            msg = f"{type_name}{first.data_path}: {first.message}"
        else:
            msg = "(no errors)"
        super().__init__(msg)


class ValidatorCache:
    """Lazily compiled validators for a fixed set of named schemas.

    Tuples compile to draft-7 positional ``items`` arrays, so validators are
    pinned to Draft 7.
    """

    def __init__(self, schemas: Mapping[str, Mapping[str, Any]]) -> None:
        self.schemas = dict(schemas)
        self._validators: dict[str, Draft7Validator] = {}

    def validator(self, name: str) -> Draft7Validator:
        cached = self._validators.get(name)
        if cached is None:
            if name not in self.schemas:
                raise KeyError(f"unknown type {name}")
            cached = Draft7Validator(self.schemas[name])
            self._validators[name] = cached
        return cached

    def errors(self, name: str, value: Any, all_errors: bool = False) -> list[ErrorRecord]:
        found = self.validator(name).iter_errors(value)
        if all_errors:
            return [ErrorRecord.from_jsonschema(error) for error in found]
        first = next(found, None)
        return [] if first is None else [ErrorRecord.from_jsonschema(first)]

    def check(self, name: str, value: Any, all_errors: bool = False) -> bool:
        return not self.errors(name, value, all_errors=all_errors)

    def assert_valid(self, name: str, value: Any, all_errors: bool = False) -> Any:
        errors = self.errors(name, value, all_errors=all_errors)
        if errors:
            raise ValidationError(name, errors)
        return value

    def reset(self) -> None:
        """Drop compiled validators; they are rebuilt on next use."""
        self._validators.clear()

    def __len__(self) -> int:
        return len(self._validators)


__all__ = ["ErrorRecord", "ValidationError", "ValidatorCache"]
