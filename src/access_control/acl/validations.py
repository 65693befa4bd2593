"""Composable validators and the interpreter that runs them.

A validator is one of a small closed set of nodes:

- ``Leaf(fn)``: ``fn(key_path, value)`` returns ``None`` or an error map. It
  may be a coroutine function.
- ``All(validators)``: runs every child against the same value and merges
  their errors.
- ``Field(name, validator)``: runs ``validator`` against ``value.<name>``
  with ``name`` appended to the key path.
- ``WhenPresent(validator)``: skips ``validator`` when the value is None.
- ``Every(validator)``: runs ``validator`` against each item of a sequence
  with the item index appended to the key path.

``as_validator`` turns plain data into nodes so rule sets can be written as
lists of functions and dicts of field validators.
"""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

from access_control.errors import ErrorMap, KeyPath, ValidationError

LeafFn = Callable[[KeyPath, Any], Union[ErrorMap, None, Awaitable[Union[ErrorMap, None]]]]


@dataclass(frozen=True, slots=True)
class Leaf:
    fn: LeafFn


@dataclass(frozen=True, slots=True)
class All:
    validators: tuple[Validator, ...]


@dataclass(frozen=True, slots=True)
class Field:
    name: str
    validator: Validator


@dataclass(frozen=True, slots=True)
class WhenPresent:
    validator: Validator


@dataclass(frozen=True, slots=True)
class Every:
    validator: Validator


Validator = Union[Leaf, All, Field, WhenPresent, Every]


def as_validator(rules: Any) -> Validator:
    """Compile a callable, list, or dict of validators into a node tree.

    ``None`` entries in lists are dropped, which lets rule sets include
    conditional rules inline.
    """
    if isinstance(rules, (Leaf, All, Field, WhenPresent, Every)):
        return rules
    if isinstance(rules, Mapping):
        return All(tuple(Field(name, as_validator(v)) for name, v in rules.items()))
    if isinstance(rules, Sequence) and not isinstance(rules, str):
        return All(tuple(as_validator(v) for v in rules if v is not None))
    if callable(rules):
        return Leaf(rules)
    raise TypeError(f"Cannot build a validator from {rules!r}")


def when_present(rules: Any) -> WhenPresent:
    return WhenPresent(as_validator(rules))


def every(rules: Any) -> Every:
    return Every(as_validator(rules))


def merge_errors(into: ErrorMap, errors: ErrorMap | None) -> ErrorMap:
    """Merge ``errors`` into ``into``, concatenating messages that share a path."""
    for key_path, messages in (errors or {}).items():
        into.setdefault(tuple(key_path), []).extend(messages)
    return into


def _field_value(value: Any, name: str) -> Any:
    if value is None:
        return None
    if isinstance(value, Mapping):
        return value.get(name)
    return getattr(value, name, None)


async def run(validator: Validator, value: Any, key_path: KeyPath = ()) -> ErrorMap:
    """Interpret a validator tree against a value and return the accumulated errors."""
    if isinstance(validator, Leaf):
        result = validator.fn(key_path, value)
        if inspect.isawaitable(result):
            result = await result
        return merge_errors({}, result)

    if isinstance(validator, All):
        errors: ErrorMap = {}
        for child in validator.validators:
            merge_errors(errors, await run(child, value, key_path))
        return errors

    if isinstance(validator, Field):
        return await run(
            validator.validator,
            _field_value(value, validator.name),
            key_path + (validator.name,),
        )

    if isinstance(validator, WhenPresent):
        if value is None:
            return {}
        return await run(validator.validator, value, key_path)

    if isinstance(validator, Every):
        errors = {}
        for index, item in enumerate(value or ()):
            merge_errors(errors, await run(validator.validator, item, key_path + (index,)))
        return errors

    raise TypeError(f"Unknown validator node: {validator!r}")


async def validate(rules: Any, value: Any) -> None:
    """Run validators against a value, raising ValidationError if any fail."""
    errors = await run(as_validator(rules), value)
    if errors:
        raise ValidationError(errors)
