"""
Supply Chain Records

Entity records held by the store. Field names match what an external
store persists, so ``to_dict``/``from_dict`` are the wire shape too.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional


class BatchStatus(str, Enum):
    """Batch lifecycle status."""
    IN_PRODUCTION = "in_production"
    QUALITY_CHECK = "quality_check"
    APPROVED = "approved"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    RECALLED = "recalled"


class EventType(str, Enum):
    """Supply chain event types."""
    MANUFACTURED = "manufactured"
    QUALITY_CHECK = "quality_check"
    APPROVED = "approved"
    REJECTED = "rejected"
    TRANSFERRED = "transferred"
    RECEIVED = "received"
    RECALLED = "recalled"


class SensorType(str, Enum):
    TEMPERATURE = "temperature"
    HUMIDITY = "humidity"
    SHOCK = "shock"
    LOCATION = "location"


class AlertType(str, Enum):
    TEMPERATURE_VIOLATION = "temperature_violation"
    SHOCK_DETECTED = "shock_detected"
    HUMIDITY_VIOLATION = "humidity_violation"
    SEAL_BROKEN = "seal_broken"
    UNAUTHORIZED_ACCESS = "unauthorized_access"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertStatus(str, Enum):
    OPEN = "open"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    FALSE_ALARM = "false_alarm"


class SubmissionType(str, Enum):
    NEW_DRUG = "new_drug"
    AMENDMENT = "amendment"
    ANNUAL_REPORT = "annual_report"
    ADVERSE_EVENT = "adverse_event"


class SubmissionStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ADDITIONAL_INFO_REQUIRED = "additional_info_required"


class CheckType(str, Enum):
    INCOMING = "incoming"
    PRODUCTION = "production"
    OUTGOING = "outgoing"
    RANDOM = "random"


class CheckResult(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    CONDITIONAL = "conditional"


class RecordMixin:
    """Dict conversion shared by all records."""

    # field name -> Enum class, coerced on from_dict
    _enum_fields: Dict[str, type] = {}

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None and f.default is None:
                continue
            data[f.name] = value.value if isinstance(value, Enum) else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Build a record from a dict.

        Unknown keys are ignored; missing required keys raise ``TypeError``
        and invalid enum values raise ``ValueError``.
        """
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        for name, enum_cls in cls._enum_fields.items():
            if kwargs.get(name) is not None:
                kwargs[name] = enum_cls(kwargs[name])
        return cls(**kwargs)


@dataclass
class Batch(RecordMixin):
    """A manufactured lot of a drug."""
    id: str
    batch_number: str
    drug_id: str
    drug_name: str
    manufacturer_id: str
    manufacturer_name: str
    manufacturing_date: str
    expiry_date: str
    quantity: int
    current_quantity: int
    status: BatchStatus = BatchStatus.IN_PRODUCTION
    qr_code: str = ""

    _enum_fields = {"status": BatchStatus}

    def __post_init__(self):
        if not self.qr_code:
            self.qr_code = f"QR-{self.batch_number}"


@dataclass
class SupplyChainEvent(RecordMixin):
    """Custody or status change for one batch. Never mutated once stored."""
    id: str
    batch_id: str
    batch_number: str
    event_type: EventType
    from_stakeholder: str
    to_stakeholder: str
    quantity: int
    location: str
    timestamp: str
    blockchain_hash: str
    qc_result: Optional[str] = None
    inspector_name: Optional[str] = None
    approver: Optional[str] = None
    notes: Optional[str] = None

    _enum_fields = {"event_type": EventType}


@dataclass
class IoTReading(RecordMixin):
    id: str
    sensor_id: str
    sensor_type: SensorType
    value: float
    unit: str
    timestamp: str
    is_alert: bool = False

    _enum_fields = {"sensor_type": SensorType}


@dataclass
class TamperAlert(RecordMixin):
    id: str
    batch_id: str
    batch_number: str
    alert_type: AlertType
    severity: AlertSeverity
    description: str
    location: str
    status: AlertStatus
    timestamp: str

    _enum_fields = {
        "alert_type": AlertType,
        "severity": AlertSeverity,
        "status": AlertStatus,
    }

    @property
    def is_active(self) -> bool:
        return self.status in (AlertStatus.OPEN, AlertStatus.INVESTIGATING)


@dataclass
class FDASubmission(RecordMixin):
    id: str
    drug_name: str
    submission_type: SubmissionType
    submission_number: str
    submitted_by: str
    submission_date: str
    status: SubmissionStatus
    approval_date: Optional[str] = None

    _enum_fields = {
        "submission_type": SubmissionType,
        "status": SubmissionStatus,
    }


@dataclass
class QualityCheck(RecordMixin):
    id: str
    batch_number: str
    check_type: CheckType
    result: CheckResult
    inspector_name: str
    stakeholder_name: str
    timestamp: str

    _enum_fields = {"check_type": CheckType, "result": CheckResult}
