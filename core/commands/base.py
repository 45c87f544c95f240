"""
RMS Command Layer — Command Base Contract
============================================
Every state change in RMS begins as a Command.

A Command is a frozen, auditable declaration of intent issued by an
actor (the staff member at the terminal). It carries identity,
context and payload — nothing else.

Rules:
- Immutable once created (frozen dataclass)
- No business logic inside
- No store interaction
- command_type must end with '.request'
- command_type follows engine.domain.action.request format
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

VALID_ACTOR_TYPES = frozenset({"HUMAN", "SYSTEM"})


@dataclass(frozen=True)
class Actor:
    """
    Who performed an action.

    Fields:
        actor_id:   Staff id (or a system component name).
        name:       Display name recorded as the order's collector.
        actor_type: HUMAN | SYSTEM.
    """

    actor_id: str
    name: str
    actor_type: str = "HUMAN"

    def __post_init__(self):
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")
        if not isinstance(self.name, str):
            raise ValueError("name must be a string.")
        if self.actor_type not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"actor_type '{self.actor_type}' not valid. "
                f"Must be one of: {sorted(VALID_ACTOR_TYPES)}"
            )

    @property
    def display_name(self) -> str:
        """Name written as collector; 'Unknown' when the actor has none."""
        return self.name.strip() or "Unknown"


@dataclass(frozen=True)
class Command:
    """
    Canonical RMS Command — declaration of intent.

    Fields:
        command_id:     Unique identifier (UUID).
        command_type:   Namespaced type ending in '.request'
                        (e.g. 'settlement.order.status.set.request').
        actor:          Who issued the command.
        payload:        Intent data (dict).
        issued_at:      When the command was issued (aware datetime).
        correlation_id: Groups related commands in one story.
        source_engine:  Engine that owns this command.
    """

    command_id: uuid.UUID
    command_type: str
    actor: Actor
    payload: dict
    issued_at: datetime
    correlation_id: uuid.UUID
    source_engine: str

    def __post_init__(self):
        if not isinstance(self.command_id, uuid.UUID):
            raise ValueError(
                f"command_id must be UUID, got {type(self.command_id).__name__}"
            )

        if not self.command_type or not isinstance(self.command_type, str):
            raise ValueError("command_type must be a non-empty string.")

        if not self.command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{self.command_type}' must end with '.request'."
            )

        parts = self.command_type.split(".")
        if len(parts) < 4:
            raise ValueError(
                f"command_type '{self.command_type}' must follow "
                f"engine.domain.action.request format (minimum 4 segments)."
            )

        if parts[0] != self.source_engine:
            raise ValueError(
                f"command_type namespace '{parts[0]}' does not match "
                f"source_engine '{self.source_engine}'."
            )

        if not isinstance(self.actor, Actor):
            raise ValueError("actor must be an Actor.")

        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")

        if not isinstance(self.issued_at, datetime) or self.issued_at.tzinfo is None:
            raise ValueError("issued_at must be a timezone-aware datetime.")

        if not isinstance(self.correlation_id, uuid.UUID):
            raise ValueError("correlation_id must be UUID.")


def build_command(
    command_type: str,
    payload: dict,
    *,
    source_engine: str,
    actor: Actor,
    issued_at: datetime,
    command_id: Optional[uuid.UUID] = None,
    correlation_id: Optional[uuid.UUID] = None,
) -> Command:
    """Shared constructor used by every request's to_command()."""
    return Command(
        command_id=command_id or uuid.uuid4(),
        command_type=command_type,
        actor=actor,
        payload=payload,
        issued_at=issued_at,
        correlation_id=correlation_id or uuid.uuid4(),
        source_engine=source_engine,
    )


def derive_source_engine(command_type: str) -> str:
    """
    Extract source engine from command type.

    settlement.order.status.set.request → settlement
    """
    return command_type.split(".")[0]
