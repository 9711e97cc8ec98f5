"""Reservation state machine: allowed sources, remote operation and fallback per target."""

from dataclasses import dataclass
from enum import Enum

from refood.models.notification import TransitionKind
from refood.models.reservation import ReservationState


class FallbackStrategy(str, Enum):
    """How a rejected primary write is reconciled with the remote state."""

    VERIFY_SOURCE = "verify_source"
    GENERIC_UPDATE_LENIENT = "generic_update_lenient"
    GENERIC_UPDATE_STRICT = "generic_update_strict"
    NOTIFY_ONLY = "notify_only"
    STRICT = "strict"


@dataclass(frozen=True)
class TransitionRule:
    """One row of the transition table."""

    target: ReservationState
    sources: frozenset[ReservationState]
    # ReservationRepository method name, None when no remote write exists
    operation: str | None
    fallback: FallbackStrategy
    event: TransitionKind

    @property
    def uses_generic_update(self) -> bool:
        return self.fallback in (
            FallbackStrategy.GENERIC_UPDATE_LENIENT,
            FallbackStrategy.GENERIC_UPDATE_STRICT,
        )

    def allows(self, current: ReservationState) -> bool:
        return current in self.sources


class TransitionRules:
    """Valid reservation state transitions."""

    RULES = {
        ReservationState.REQUESTED: TransitionRule(
            target=ReservationState.REQUESTED,
            sources=frozenset({ReservationState.REQUESTED}),
            operation=None,
            fallback=FallbackStrategy.NOTIFY_ONLY,
            event=TransitionKind.REQUESTED,
        ),
        ReservationState.CONFIRMED: TransitionRule(
            target=ReservationState.CONFIRMED,
            sources=frozenset({ReservationState.REQUESTED}),
            operation="accept",
            fallback=FallbackStrategy.VERIFY_SOURCE,
            event=TransitionKind.CONFIRMED,
        ),
        ReservationState.IN_TRANSIT: TransitionRule(
            target=ReservationState.IN_TRANSIT,
            sources=frozenset({ReservationState.CONFIRMED}),
            operation="mark_in_transit",
            fallback=FallbackStrategy.GENERIC_UPDATE_LENIENT,
            event=TransitionKind.IN_TRANSIT,
        ),
        ReservationState.DELIVERED: TransitionRule(
            target=ReservationState.DELIVERED,
            # Confirmed -> Delivered skips the transit step
            sources=frozenset({ReservationState.IN_TRANSIT, ReservationState.CONFIRMED}),
            operation="mark_delivered",
            fallback=FallbackStrategy.GENERIC_UPDATE_LENIENT,
            event=TransitionKind.DELIVERED,
        ),
        ReservationState.REJECTED: TransitionRule(
            target=ReservationState.REJECTED,
            sources=frozenset({ReservationState.REQUESTED}),
            operation="reject",
            fallback=FallbackStrategy.STRICT,
            event=TransitionKind.REJECTED,
        ),
        ReservationState.CANCELLED: TransitionRule(
            target=ReservationState.CANCELLED,
            sources=frozenset({ReservationState.REQUESTED}),
            operation="cancel",
            fallback=FallbackStrategy.GENERIC_UPDATE_STRICT,
            event=TransitionKind.CANCELLED,
        ),
        ReservationState.DELETED: TransitionRule(
            target=ReservationState.DELETED,
            sources=frozenset({ReservationState.REQUESTED, ReservationState.CONFIRMED}),
            operation="delete",
            fallback=FallbackStrategy.STRICT,
            event=TransitionKind.DELETED,
        ),
    }

    @classmethod
    def for_target(cls, target: ReservationState) -> TransitionRule:
        return cls.RULES[target]

    @classmethod
    def can_transition(cls, from_state: ReservationState, to_state: ReservationState) -> bool:
        """Check if a state transition is valid."""
        rule = cls.RULES.get(to_state)
        return rule is not None and rule.allows(from_state)
