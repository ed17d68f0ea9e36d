"""Pydantic v2 models for flightwatch.

Re-exports from submodules so ``from flightwatch.models import X`` works.
"""

from flightwatch.models.events import (  # noqa: F401
    ChangeEvent,
    CombinedEvent,
    InboundDelayEvent,
    InboundLandedEvent,
    MilestoneEvent,
    UpdateEvent,
    parse_update_event,
)
from flightwatch.models.flight import (  # noqa: F401
    MONITORED_FIELDS,
    TIMESTAMP_FIELDS,
    ChangeSet,
    Connection,
    FieldChange,
    FlightSnapshot,
    InboundAlertState,
    InboundLegInfo,
    InboundStatus,
    Milestone,
    MilestoneState,
    MilestoneTag,
    RiskTier,
    SchedulePhase,
)
from flightwatch.models.storage import (  # noqa: F401
    StoredSnapshot,
    Subscription,
    SubscriptionStatus,
    User,
)
