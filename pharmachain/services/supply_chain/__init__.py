"""
Supply Chain Services - Batches, Custody Events & Cold-Chain Telemetry

In-memory model of a simulated pharmaceutical supply chain:
- Batch lifecycle state machine for generated custody events
- Synthetic IoT telemetry with per-sensor continuity
- Store owning every collection and the batch status side effects
- Optional Redis-backed realtime sync for tamper alerts
"""

from .records import (
    AlertSeverity,
    AlertStatus,
    AlertType,
    Batch,
    BatchStatus,
    CheckResult,
    CheckType,
    EventType,
    FDASubmission,
    IoTReading,
    QualityCheck,
    SensorType,
    SubmissionStatus,
    SubmissionType,
    SupplyChainEvent,
    TamperAlert,
)

from .telemetry import (
    SensorState,
    TelemetryGenerator,
    summarize_readings,
)

from .lifecycle import (
    TRANSITIONS,
    BatchLifecycle,
    LifecycleStateMachine,
    allowed_next,
    is_valid_walk,
    status_after,
)

from .store import (
    InvalidTransitionError,
    SupplyChainStore,
    UnknownRecordError,
)

__all__ = [
    # Records
    'AlertSeverity',
    'AlertStatus',
    'AlertType',
    'Batch',
    'BatchStatus',
    'CheckResult',
    'CheckType',
    'EventType',
    'FDASubmission',
    'IoTReading',
    'QualityCheck',
    'SensorType',
    'SubmissionStatus',
    'SubmissionType',
    'SupplyChainEvent',
    'TamperAlert',

    # Telemetry
    'SensorState',
    'TelemetryGenerator',
    'summarize_readings',

    # Lifecycle
    'TRANSITIONS',
    'BatchLifecycle',
    'LifecycleStateMachine',
    'allowed_next',
    'is_valid_walk',
    'status_after',

    # Store
    'InvalidTransitionError',
    'SupplyChainStore',
    'UnknownRecordError',
]
