from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Literal

logger = logging.getLogger(__name__)

DerivationStage = Literal[
	"locals",
	"handler",
	"reducer",
	"reaction",
	"lifecycle",
]

ErrorCode = Literal[
	"dispatch",
	"locals",
	"handler",
	"reducer",
	"reaction",
	"lifecycle",
	"listener",
]


class CascadeError(RuntimeError):
	"""Base class for every error raised by the dispatch protocol."""


class EffectError(CascadeError):
	pass


class InvalidEffectTag(EffectError):
	"""A handler result used a tag outside app-state, local-state, action."""

	tag: Any

	def __init__(self, tag: Any) -> None:
		self.tag = tag
		super().__init__(
			f"Invalid effect tag {tag!r}, expected one of "
			+ "'app-state', 'local-state' or 'action'"
		)


class MalformedHandlerResult(EffectError):
	"""A handler returned something that is not a ``ret(...)`` value, or an
	option list with a dangling tag."""


class UnresolvedReactionTarget(CascadeError):
	"""A reaction aimed at the parent fired on a node that has no parent."""


class DerivationFailure(CascadeError):
	"""User code (locals, handler, reducer, hook) raised. The original
	exception is available as ``__cause__``."""

	stage: DerivationStage

	def __init__(self, message: str, *, stage: DerivationStage) -> None:
		self.stage = stage
		super().__init__(message)


class MissingMessageHandler(CascadeError):
	pass


class NodeUnmounted(CascadeError):
	pass


class DispatchDepthExceeded(CascadeError):
	"""Nested sends went deeper than the runtime allows, which usually means
	two reactions keep re-triggering each other."""


def error_code(exc: BaseException) -> ErrorCode:
	if isinstance(exc, DerivationFailure):
		return exc.stage
	if isinstance(exc, UnresolvedReactionTarget):
		return "reaction"
	return "dispatch"


ErrorListener = Callable[[BaseException, ErrorCode, dict[str, Any]], None]


class Errors:
	"""Error reporter owned by a Runtime.

	Reporting never swallows anything: the failing dispatch still propagates
	to its caller, the report only logs it and informs listeners.
	"""

	__slots__: tuple[str, ...] = ("_listeners",)
	_listeners: list[ErrorListener]

	def __init__(self) -> None:
		self._listeners = []

	def on_error(self, listener: ErrorListener) -> Callable[[], None]:
		self._listeners.append(listener)

		def _remove() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return _remove

	def report(
		self,
		exc: BaseException,
		*,
		code: ErrorCode,
		details: dict[str, Any] | None = None,
	) -> None:
		payload_details = dict(details) if details is not None else {}
		logger.error(
			"Cascade error code=%s message=%s details=%s",
			code,
			exc,
			payload_details,
		)
		for listener in list(self._listeners):
			try:
				listener(exc, code, payload_details)
			except Exception:
				logger.exception("Error listener %r failed", listener)


__all__ = [
	"CascadeError",
	"DerivationFailure",
	"DerivationStage",
	"DispatchDepthExceeded",
	"EffectError",
	"ErrorCode",
	"ErrorListener",
	"Errors",
	"InvalidEffectTag",
	"MalformedHandlerResult",
	"MissingMessageHandler",
	"NodeUnmounted",
	"UnresolvedReactionTarget",
	"error_code",
]
