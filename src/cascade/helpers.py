import dataclasses
from collections.abc import Callable, Mapping
from typing import Any, Literal, TypeVar

from cascade.errors import CascadeError, DerivationFailure, DerivationStage

T = TypeVar("T")

Equality = Literal["deep", "identity"]
Comparator = Callable[[Any, Any], bool]

MISSING: Any = object()


def values_equal(a: Any, b: Any) -> bool:
	"""Deep structural equality for application and local state values.

	Mappings compare by keys and values, lists and tuples positionally (a list
	equals a tuple holding equal items), dataclass instances of the same type
	field by field. Anything else falls back to ``==``; an ``__eq__`` that
	raises counts as "not equal".
	"""
	if a is b:
		return True
	if isinstance(a, Mapping) and isinstance(b, Mapping):
		if len(a) != len(b):  # pyright: ignore[reportUnknownArgumentType]
			return False
		for key, value in a.items():  # pyright: ignore[reportUnknownVariableType]
			if key not in b:
				return False
			if not values_equal(value, b[key]):
				return False
		return True
	if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
		if len(a) != len(b):  # pyright: ignore[reportUnknownArgumentType]
			return False
		return all(
			values_equal(x, y)
			for x, y in zip(a, b, strict=True)  # pyright: ignore[reportUnknownArgumentType, reportUnknownVariableType]
		)
	if _is_dataclass_instance(a) and type(a) is type(b):
		return all(
			values_equal(getattr(a, field.name), getattr(b, field.name))
			for field in dataclasses.fields(a)
		)
	try:
		return bool(a == b)
	except Exception:
		return False


def identical(a: Any, b: Any) -> bool:
	return a is b


def comparator(equality: Equality) -> Comparator:
	if equality == "deep":
		return values_equal
	if equality == "identity":
		return identical
	raise ValueError(f"Unknown equality {equality!r}, expected 'deep' or 'identity'")


def _is_dataclass_instance(value: Any) -> bool:
	return dataclasses.is_dataclass(value) and not isinstance(value, type)


def call_user(
	stage: DerivationStage,
	what: str,
	fn: Callable[..., T],
	*args: Any,
) -> T:
	"""Invoke user-supplied code, chaining foreign exceptions into a
	DerivationFailure. Cascade's own errors and stack exhaustion pass through
	untouched."""
	try:
		return fn(*args)
	except (CascadeError, RecursionError):
		raise
	except Exception as exc:
		raise DerivationFailure(f"{what} failed: {exc!r}", stage=stage) from exc


__all__ = [
	"MISSING",
	"Comparator",
	"Equality",
	"call_user",
	"comparator",
	"identical",
	"values_equal",
]
