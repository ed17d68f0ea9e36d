"""Update events handed from the monitor to the notification side.

Each event kind carries exactly the fields its message template needs.
``UpdateEvent`` is a discriminated union on ``kind`` so events survive a
round trip through a JSON bus unchanged.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter

from flightwatch.models.flight import (
    ChangeSet,
    FlightSnapshot,
    InboundLegInfo,
    MilestoneTag,
)


class _EventBase(BaseModel):
    flight_number: str
    date: str
    current: FlightSnapshot  # status at the time the event was raised

    @property
    def flight_id(self) -> str:
        return f"{self.flight_number}#{self.date}"


class MilestoneEvent(_EventBase):
    kind: Literal["milestone"] = "milestone"
    milestone: MilestoneTag
    hours_remaining: float | None = None


class ChangeEvent(_EventBase):
    kind: Literal["change"] = "change"
    changes: ChangeSet


class CombinedEvent(_EventBase):
    kind: Literal["combined"] = "combined"
    milestone: MilestoneTag
    hours_remaining: float | None = None
    changes: ChangeSet


class InboundDelayEvent(_EventBase):
    kind: Literal["inbound-delay"] = "inbound-delay"
    inbound: InboundLegInfo


class InboundLandedEvent(_EventBase):
    kind: Literal["inbound-landed"] = "inbound-landed"
    inbound: InboundLegInfo


UpdateEvent = Annotated[
    Union[MilestoneEvent, ChangeEvent, CombinedEvent, InboundDelayEvent, InboundLandedEvent],
    Field(discriminator="kind"),
]

_update_event_adapter: TypeAdapter[Any] = TypeAdapter(UpdateEvent)


def parse_update_event(payload: dict[str, Any] | str) -> UpdateEvent:
    """Validate a bus payload (dict or JSON string) back into an event."""
    if isinstance(payload, str):
        return _update_event_adapter.validate_json(payload)
    return _update_event_adapter.validate_python(payload)
