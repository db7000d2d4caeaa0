"""
Lifecycle State Machine

Governs the order of auto-generated supply chain events for a batch and
the location changes that come with custody transfers.

Transition graph (last event type -> allowed next types):

    none          -> manufactured
    manufactured  -> quality_check
    quality_check -> approved | rejected
    approved      -> transferred
    transferred   -> received
    received      -> quality_check | transferred
    rejected      -> quality_check

Only ``transferred`` moves a batch, to a neighbour of its current location.
Manually recorded events are not checked against this graph.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

from .identifiers import Clock, RandomSource, generate_blockchain_hash, new_id, now_iso, pick, utc_now
from .records import Batch, BatchStatus, EventType, SupplyChainEvent
from .registry import CURRENT_HOLDER, DEFAULT_LOCATION, DISTRIBUTOR, MANUFACTURER, neighbours

logger = logging.getLogger(__name__)

NONE = "none"

TRANSITIONS: Dict[str, Tuple[EventType, ...]] = {
    NONE: (EventType.MANUFACTURED,),
    EventType.MANUFACTURED.value: (EventType.QUALITY_CHECK,),
    EventType.QUALITY_CHECK.value: (EventType.APPROVED, EventType.REJECTED),
    EventType.APPROVED.value: (EventType.TRANSFERRED,),
    EventType.TRANSFERRED.value: (EventType.RECEIVED,),
    EventType.RECEIVED.value: (EventType.QUALITY_CHECK, EventType.TRANSFERRED),
    EventType.REJECTED.value: (EventType.QUALITY_CHECK,),
}

FALLBACK_TRANSITIONS: Tuple[EventType, ...] = (EventType.MANUFACTURED,)

REGULATOR_MARKER = "fda"


@dataclass
class BatchLifecycle:
    """Where a batch currently sits in the graph."""
    last_event: str = NONE
    location: str = DEFAULT_LOCATION


def _key(event_type) -> str:
    if event_type is None:
        return NONE
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


def allowed_next(last_event_type) -> Tuple[EventType, ...]:
    """Legal successors of ``last_event_type``; unknown states restart at manufactured."""
    return TRANSITIONS.get(_key(last_event_type), FALLBACK_TRANSITIONS)


def is_valid_walk(event_types: Iterable) -> bool:
    """True when ``event_types`` is a path through the graph starting from none."""
    state = NONE
    for event_type in event_types:
        key = _key(event_type)
        if key not in {t.value for t in TRANSITIONS.get(state, ())}:
            return False
        state = key
    return True


def next_location(current: str, event_type: EventType, rng: RandomSource) -> str:
    if event_type != EventType.TRANSFERRED:
        return current
    options = neighbours(current)
    if not options:
        return current
    return pick(rng, options)


def status_after(event: SupplyChainEvent) -> Optional[BatchStatus]:
    """
    Batch status implied by ``event``, or None when it changes nothing.

    An ``approved`` event approves the batch. Separately, a passed
    ``quality_check`` whose approver mentions the FDA (any case) also
    approves it. The approver is matched by substring only.
    """
    if event.event_type == EventType.APPROVED:
        return BatchStatus.APPROVED

    approver = event.approver or ""
    if (
        event.event_type == EventType.QUALITY_CHECK
        and event.qc_result == "passed"
        and REGULATOR_MARKER in approver.lower()
    ):
        return BatchStatus.APPROVED

    return None


class LifecycleStateMachine:
    """Emits the next legal event for a batch."""

    def __init__(self, rng: RandomSource, clock: Clock = utc_now):
        self.rng = rng
        self.clock = clock

    def next_event(
        self,
        batch: Batch,
        last_event_type=NONE,
        last_location: str = DEFAULT_LOCATION,
    ) -> SupplyChainEvent:
        options = allowed_next(last_event_type)
        event_type = pick(self.rng, options)
        location = next_location(last_location, event_type, self.rng)
        transferred = event_type == EventType.TRANSFERRED

        event = SupplyChainEvent(
            id=new_id("e", self.rng),
            batch_id=batch.id,
            batch_number=batch.batch_number,
            event_type=event_type,
            from_stakeholder=MANUFACTURER if transferred else CURRENT_HOLDER,
            to_stakeholder=DISTRIBUTOR if transferred else CURRENT_HOLDER,
            quantity=batch.quantity,
            location=location,
            timestamp=now_iso(self.clock),
            blockchain_hash=generate_blockchain_hash(self.rng),
        )
        logger.debug(
            f"{batch.batch_number}: {_key(last_event_type)} -> {event_type.value} at {location}"
        )
        return event

    def advance(self, batch: Batch, state: BatchLifecycle) -> Tuple[SupplyChainEvent, BatchLifecycle]:
        """``next_event`` from a tracked state, returning the state that follows."""
        event = self.next_event(batch, state.last_event, state.location)
        return event, BatchLifecycle(last_event=event.event_type.value, location=event.location)

    def placeholder_event(self) -> SupplyChainEvent:
        """Sentinel returned when there is no batch to advance."""
        return SupplyChainEvent(
            id=new_id("e", self.rng),
            batch_id="b0",
            batch_number="UNKNOWN",
            event_type=EventType.MANUFACTURED,
            from_stakeholder=MANUFACTURER,
            to_stakeholder=MANUFACTURER,
            quantity=0,
            location=DEFAULT_LOCATION,
            timestamp=now_iso(self.clock),
            blockchain_hash=generate_blockchain_hash(self.rng),
        )
