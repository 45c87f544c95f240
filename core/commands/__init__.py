"""
RMS Command Layer
===================
Every state change begins as a Command issued by an Actor.
Engine policies answer with None or a RejectionReason.
"""

from core.commands.base import (
    Actor,
    Command,
    VALID_ACTOR_TYPES,
    build_command,
    derive_source_engine,
)
from core.commands.rejection import (
    ReasonCode,
    RejectionReason,
)
