import os
import sys
from typing import cast

from cascade.helpers import Equality

ENV_CASCADE_MAX_DISPATCH_DEPTH = "CASCADE_MAX_DISPATCH_DEPTH"
ENV_CASCADE_LOG_DROPPED_ACTIONS = "CASCADE_LOG_DROPPED_ACTIONS"
ENV_CASCADE_EQUALITY = "CASCADE_EQUALITY"

# Upper bound on interpreter frames per nested send (send, handle_returned,
# commit_app_state, fire, plus handler calls).
FRAMES_PER_SEND = 8


def default_max_dispatch_depth() -> int:
	return max(1, sys.getrecursionlimit() // FRAMES_PER_SEND)


class CascadeEnv:
	"""Typed access to the CASCADE_* environment variables.

	Values are read on every access so tests can patch ``os.environ``.
	"""

	@property
	def max_dispatch_depth(self) -> int:
		raw = os.environ.get(ENV_CASCADE_MAX_DISPATCH_DEPTH)
		if raw is None or raw.strip() == "":
			return default_max_dispatch_depth()
		try:
			value = int(raw)
		except ValueError as exc:
			raise ValueError(
				f"{ENV_CASCADE_MAX_DISPATCH_DEPTH} must be an integer, got {raw!r}"
			) from exc
		if value < 1:
			raise ValueError(f"{ENV_CASCADE_MAX_DISPATCH_DEPTH} must be positive")
		return value

	@property
	def log_dropped_actions(self) -> bool:
		raw = os.environ.get(ENV_CASCADE_LOG_DROPPED_ACTIONS)
		if raw is None:
			return False
		return raw.strip().lower() not in {"", "0", "false", "no", "off"}

	@property
	def equality(self) -> Equality:
		raw = os.environ.get(ENV_CASCADE_EQUALITY, "deep").strip().lower()
		if raw not in ("deep", "identity"):
			raise ValueError(
				f"{ENV_CASCADE_EQUALITY} must be 'deep' or 'identity', got {raw!r}"
			)
		return cast(Equality, raw)


env = CascadeEnv()


__all__ = [
	"FRAMES_PER_SEND",
	"ENV_CASCADE_EQUALITY",
	"ENV_CASCADE_LOG_DROPPED_ACTIONS",
	"ENV_CASCADE_MAX_DISPATCH_DEPTH",
	"CascadeEnv",
	"default_max_dispatch_depth",
	"env",
]
