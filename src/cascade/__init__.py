from .actions import emit, route
from .component import Component, component
from .context import DispatchContext
from .dispatch import (
	dispatch_action,
	handle_effects,
	handle_message,
	handle_returned,
	send,
)
from .effects import (
	KEEP,
	ActionReducer,
	Effect,
	Effects,
	Tag,
	pass_through,
	reduce_action,
	resolve,
	resolve_effects,
	ret,
)
from .env import env
from .errors import (
	CascadeError,
	DerivationFailure,
	DispatchDepthExceeded,
	EffectError,
	InvalidEffectTag,
	MalformedHandlerResult,
	MissingMessageHandler,
	NodeUnmounted,
	UnresolvedReactionTarget,
)
from .helpers import values_equal
from .locals import compute_locals
from .node import Instantiate, Node, NodeKind
from .reactions import (
	NO_REACTION,
	PARENT,
	EmbedAppState,
	KeyEmbedder,
	Reaction,
	embed_reaction,
	fire,
	pass_through_reaction,
	reaction,
)
from .runtime import Runtime, default_runtime
from .scheduling import repeat, send_later, send_soon
from .update import Proposed, default_should_update, should_update

__all__ = [
	"KEEP",
	"NO_REACTION",
	"PARENT",
	"ActionReducer",
	"CascadeError",
	"Component",
	"DerivationFailure",
	"DispatchContext",
	"DispatchDepthExceeded",
	"Effect",
	"EffectError",
	"Effects",
	"EmbedAppState",
	"Instantiate",
	"InvalidEffectTag",
	"KeyEmbedder",
	"MalformedHandlerResult",
	"MissingMessageHandler",
	"Node",
	"NodeKind",
	"NodeUnmounted",
	"Proposed",
	"Reaction",
	"Runtime",
	"Tag",
	"UnresolvedReactionTarget",
	"component",
	"compute_locals",
	"default_runtime",
	"default_should_update",
	"dispatch_action",
	"embed_reaction",
	"emit",
	"env",
	"fire",
	"handle_effects",
	"handle_message",
	"handle_returned",
	"pass_through",
	"pass_through_reaction",
	"reaction",
	"reduce_action",
	"repeat",
	"resolve",
	"resolve_effects",
	"ret",
	"route",
	"send",
	"send_later",
	"send_soon",
	"should_update",
	"values_equal",
]
