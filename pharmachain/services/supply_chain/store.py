"""
Supply Chain Store

Single source of truth for batches, supply chain events, IoT readings,
tamper alerts, FDA submissions and quality checks. Generators return new
records; only the store appends them.

Collections are append-only from the caller's point of view. ``list_*``
methods return snapshots, so callers cannot bypass the status side effects
applied on ingest.
"""

import logging
import random
import threading
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from . import seed
from .identifiers import Clock, RandomSource, generate_blockchain_hash, new_id, now_iso, pick, today, utc_now
from .lifecycle import BatchLifecycle, LifecycleStateMachine, status_after
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
    SubmissionStatus,
    SubmissionType,
    SupplyChainEvent,
    TamperAlert,
)
from .registry import DRUGS, MANUFACTURER, batch_size_for
from .telemetry import SensorState, TelemetryGenerator, summarize_readings

logger = logging.getLogger(__name__)

BATCHES = "batches"
SUPPLY_EVENTS = "supply_events"
IOT_READINGS = "iot_readings"
TAMPER_ALERTS = "tamper_alerts"
FDA_SUBMISSIONS = "fda_submissions"
QUALITY_CHECKS = "quality_checks"

ALERT_TRANSITIONS: Dict[AlertStatus, tuple] = {
    AlertStatus.OPEN: (AlertStatus.INVESTIGATING, AlertStatus.FALSE_ALARM),
    AlertStatus.INVESTIGATING: (AlertStatus.RESOLVED,),
    AlertStatus.RESOLVED: (),
    AlertStatus.FALSE_ALARM: (),
}

GENERATED_ALERT_TYPES = (AlertType.TEMPERATURE_VIOLATION, AlertType.SHOCK_DETECTED)
GENERATED_ALERT_SEVERITIES = (AlertSeverity.LOW, AlertSeverity.MEDIUM, AlertSeverity.HIGH)
SUBMISSION_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
QC_FAILURE_RATE = 0.1

Listener = Callable[[str, Any], None]


class UnknownRecordError(KeyError):
    """No record with the requested id."""


class InvalidTransitionError(ValueError):
    """Requested status change is not in the transition table."""


def _add_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year + years, day=28)


class SupplyChainStore:
    """
    In-memory store behind the dashboard.

    Construct one per application and pass it to whatever needs it. The
    random source and clock are shared with the telemetry generator and the
    lifecycle state machine so a seeded store is fully reproducible.
    """

    def __init__(
        self,
        rng: Optional[RandomSource] = None,
        clock: Clock = utc_now,
        seed_data: bool = True,
        blockchain_enabled: bool = False,
    ):
        self.rng = rng or random.Random()
        self.clock = clock
        self.telemetry = TelemetryGenerator(self.rng, clock)
        self.lifecycle = LifecycleStateMachine(self.rng, clock)
        self.blockchain_enabled = blockchain_enabled

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self._sensor_states: Dict[str, SensorState] = {}
        self._lifecycles: Dict[str, BatchLifecycle] = {}

        self._batches: List[Batch] = []
        self._supply_events: List[SupplyChainEvent] = []
        self._iot_readings: List[IoTReading] = []
        self._tamper_alerts: List[TamperAlert] = []
        self._fda_submissions: List[FDASubmission] = []
        self._quality_checks: List[QualityCheck] = []

        if seed_data:
            self._load_seed()

        logger.info(
            f"Supply chain store ready: {len(self._batches)} batches, "
            f"{len(self._supply_events)} events"
        )

    def _load_seed(self):
        self._batches = seed.seed_batches()
        self._supply_events = seed.seed_supply_events()
        self._iot_readings = seed.seed_iot_readings()
        self._tamper_alerts = seed.seed_tamper_alerts()
        self._fda_submissions = seed.seed_fda_submissions()
        self._quality_checks = seed.seed_quality_checks()

        for event in sorted(self._supply_events, key=lambda e: e.timestamp):
            self._lifecycles[event.batch_id] = BatchLifecycle(
                last_event=event.event_type.value, location=event.location
            )

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(collection, record)`` after every mutation. Returns an unsubscribe handle."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, collection: str, record: Any):
        for listener in list(self._listeners):
            try:
                listener(collection, record)
            except Exception as e:
                logger.error(f"Store listener failed on {collection}: {e}")

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def list_batches(self) -> List[Batch]:
        with self._lock:
            return list(self._batches)

    def get_batch(self, batch_id: str) -> Optional[Batch]:
        with self._lock:
            for batch in self._batches:
                if batch.id == batch_id:
                    return batch
        return None

    def _require_batch(self, batch_id: str) -> Batch:
        batch = self.get_batch(batch_id)
        if batch is None:
            raise UnknownRecordError(batch_id)
        return batch

    def add_batch(self, batch: Batch):
        with self._lock:
            self._batches.insert(0, batch)
        self._notify(BATCHES, batch)

    def add_random_batch(self) -> Batch:
        """New batch of a catalogued drug plus its manufactured event."""
        with self._lock:
            drug = pick(self.rng, DRUGS)
            now = self.clock()
            batch_number = f"BATCH-{now.year}-{now.month:02d}-{int(self.rng.random() * 900 + 100)}"
            base_quantity = batch_size_for(drug.dosage_form)
            quantity = base_quantity + int(self.rng.random() * base_quantity * 0.1)

            batch = Batch(
                id=new_id("b", self.rng),
                batch_number=batch_number,
                drug_id=drug.id,
                drug_name=drug.name,
                manufacturer_id="1",
                manufacturer_name=MANUFACTURER,
                manufacturing_date=now.date().isoformat(),
                expiry_date=_add_years(now.date(), 2).isoformat(),
                quantity=quantity,
                current_quantity=quantity,
                status=BatchStatus.IN_PRODUCTION,
            )

        self.add_batch(batch)
        self.add_random_supply_event(batch)
        logger.debug(f"Generated batch {batch.batch_number} ({drug.name}, {quantity} units)")
        return batch

    def set_batch_status(self, batch_id: str, status: Union[BatchStatus, str]) -> Batch:
        """Administrative override of a batch's status."""
        status = BatchStatus(status)
        with self._lock:
            batch = self._set_status(batch_id, status)
        if batch is None:
            raise UnknownRecordError(batch_id)
        self._notify(BATCHES, batch)
        return batch

    def _set_status(self, batch_id: str, status: BatchStatus) -> Optional[Batch]:
        for index, batch in enumerate(self._batches):
            if batch.id == batch_id:
                updated = replace(batch, status=status)
                self._batches[index] = updated
                return updated
        return None

    # ------------------------------------------------------------------
    # Supply chain events
    # ------------------------------------------------------------------

    def list_supply_events(self) -> List[SupplyChainEvent]:
        with self._lock:
            return list(self._supply_events)

    def events_for_batch(self, batch_id: str) -> List[SupplyChainEvent]:
        """Events of one batch, oldest first. Ties keep insertion order."""
        with self._lock:
            events = [e for e in reversed(self._supply_events) if e.batch_id == batch_id]
        return sorted(events, key=lambda e: e.timestamp)

    def add_supply_event(self, event: SupplyChainEvent):
        """Store ``event`` and apply its batch status side effect."""
        updated = None
        with self._lock:
            self._supply_events.insert(0, event)
            status = status_after(event)
            if status is not None:
                updated = self._set_status(event.batch_id, status)

        self._notify(SUPPLY_EVENTS, event)
        if updated is not None:
            logger.info(f"Batch {updated.batch_number} -> {updated.status.value} via {event.event_type.value}")
            self._notify(BATCHES, updated)

    def add_random_supply_event(self, batch: Optional[Batch] = None) -> SupplyChainEvent:
        """
        Next legal event for ``batch`` (or a random batch).

        With no batch at all, returns an unstored placeholder event for
        batch "b0"/"UNKNOWN".
        """
        with self._lock:
            target = batch
            if target is None and self._batches:
                target = pick(self.rng, self._batches)
            if target is None:
                logger.debug("No batches available, returning placeholder event")
                return self.lifecycle.placeholder_event()

            state = self._lifecycles.get(target.id, BatchLifecycle())
            event, self._lifecycles[target.id] = self.lifecycle.advance(target, state)

        self.add_supply_event(event)
        return event

    def lifecycle_state(self, batch_id: str) -> BatchLifecycle:
        with self._lock:
            return self._lifecycles.get(batch_id, BatchLifecycle())

    def record_manual_event(
        self,
        batch_id: str,
        event_type: Union[EventType, str],
        from_stakeholder: str,
        to_stakeholder: str,
        location: str,
        quantity: int,
        qc_result: Optional[str] = None,
        inspector_name: Optional[str] = None,
        approver: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> SupplyChainEvent:
        """
        Record a user-submitted event for an existing batch.

        Not checked against the lifecycle graph. A quality_check also files a
        QualityCheck record, and when its approver mentions the FDA an
        explicit approved event is recorded alongside it.
        """
        batch = self._require_batch(batch_id)
        event_type = EventType(event_type)
        is_qc = event_type == EventType.QUALITY_CHECK

        event = SupplyChainEvent(
            id=new_id("e", self.rng),
            batch_id=batch.id,
            batch_number=batch.batch_number,
            event_type=event_type,
            from_stakeholder=from_stakeholder,
            to_stakeholder=to_stakeholder,
            quantity=quantity,
            location=location,
            timestamp=now_iso(self.clock),
            blockchain_hash=generate_blockchain_hash(self.rng),
            qc_result=qc_result if is_qc else None,
            inspector_name=inspector_name if is_qc else None,
            approver=approver if is_qc else None,
            notes=notes,
        )

        check = approval = None
        with self._lock:
            if is_qc:
                check = QualityCheck(
                    id=new_id("q", self.rng),
                    batch_number=batch.batch_number,
                    check_type=CheckType.RANDOM,
                    result=CheckResult(qc_result or CheckResult.PASSED.value),
                    inspector_name=inspector_name or "Unknown",
                    stakeholder_name=from_stakeholder or "Unknown",
                    timestamp=event.timestamp,
                )
                if approver and "fda" in approver.lower():
                    approval = replace(event, id=new_id("e", self.rng), event_type=EventType.APPROVED)

        if check is not None:
            self.add_quality_check(check)
        if approval is not None:
            self.add_supply_event(approval)
        self.add_supply_event(event)
        return event

    # ------------------------------------------------------------------
    # IoT readings
    # ------------------------------------------------------------------

    def list_iot_readings(self) -> List[IoTReading]:
        with self._lock:
            return list(self._iot_readings)

    def add_iot_reading(self, reading: IoTReading):
        with self._lock:
            self._iot_readings.append(reading)
        self._notify(IOT_READINGS, reading)

    def seed_sensor_state(self, sensor_id: str, value: float, timestamp: datetime):
        """Set the value the next reading of ``sensor_id`` continues from."""
        self.telemetry.profile(sensor_id)
        with self._lock:
            self._sensor_states[sensor_id] = SensorState(value=value, timestamp=timestamp)

    def add_random_iot_reading(self, sensor_id: Optional[str] = None, now: Optional[datetime] = None) -> IoTReading:
        with self._lock:
            sensor = sensor_id or pick(self.rng, list(self.telemetry.sensors))
            reading, self._sensor_states[sensor] = self.telemetry.generate_reading(
                sensor, self._sensor_states.get(sensor), now
            )

        self.add_iot_reading(reading)
        return reading

    def sensor_summary(self) -> Dict[str, Dict[str, float]]:
        return summarize_readings(self.list_iot_readings())

    # ------------------------------------------------------------------
    # Tamper alerts
    # ------------------------------------------------------------------

    def list_tamper_alerts(self) -> List[TamperAlert]:
        with self._lock:
            return list(self._tamper_alerts)

    def add_tamper_alert(self, alert: TamperAlert):
        with self._lock:
            self._tamper_alerts.insert(0, alert)
        self._notify(TAMPER_ALERTS, alert)

    def add_random_tamper_alert(self, batch_id: Optional[str] = None) -> TamperAlert:
        with self._lock:
            if batch_id:
                target = self.get_batch(batch_id)
            else:
                target = pick(self.rng, self._batches) if self._batches else None

            alert = TamperAlert(
                id=new_id("a", self.rng),
                batch_id=target.id if target else "b0",
                batch_number=target.batch_number if target else "UNKNOWN",
                alert_type=pick(self.rng, GENERATED_ALERT_TYPES),
                severity=pick(self.rng, GENERATED_ALERT_SEVERITIES),
                description="Automatically generated alert for demo",
                location="Simulated Location",
                status=AlertStatus.OPEN,
                timestamp=now_iso(self.clock),
            )

        self.add_tamper_alert(alert)
        return alert

    def transition_alert(self, alert_id: str, status: Union[AlertStatus, str]) -> TamperAlert:
        """Move an alert along open -> investigating -> resolved, or open -> false_alarm."""
        status = AlertStatus(status)
        with self._lock:
            for index, alert in enumerate(self._tamper_alerts):
                if alert.id != alert_id:
                    continue
                if status not in ALERT_TRANSITIONS[alert.status]:
                    raise InvalidTransitionError(
                        f"Alert {alert_id} cannot go from {alert.status.value} to {status.value}"
                    )
                updated = replace(alert, status=status)
                self._tamper_alerts[index] = updated
                break
            else:
                raise UnknownRecordError(alert_id)

        self._notify(TAMPER_ALERTS, updated)
        return updated

    def merge_alert(self, operation: str, record: Union[TamperAlert, Dict[str, Any]]):
        """
        Apply an externally pushed change, keyed by id, last write wins.

        INSERT and UPDATE replace an existing alert with the same id or
        prepend a new one; DELETE removes it.
        """
        operation = operation.upper()
        if operation == "DELETE":
            alert_id = record.id if isinstance(record, TamperAlert) else record.get("id")
            with self._lock:
                self._tamper_alerts = [a for a in self._tamper_alerts if a.id != alert_id]
            self._notify(TAMPER_ALERTS, {"id": alert_id, "deleted": True})
            return

        if operation not in ("INSERT", "UPDATE"):
            logger.warning(f"Ignoring unknown alert operation {operation}")
            return

        alert = record if isinstance(record, TamperAlert) else TamperAlert.from_dict(record)
        with self._lock:
            for index, existing in enumerate(self._tamper_alerts):
                if existing.id == alert.id:
                    self._tamper_alerts[index] = alert
                    break
            else:
                self._tamper_alerts.insert(0, alert)
        self._notify(TAMPER_ALERTS, alert)

    def replace_alerts(self, alerts: Iterable[TamperAlert]):
        """Swap in an external snapshot, newest first."""
        snapshot = sorted(alerts, key=lambda a: a.timestamp, reverse=True)
        with self._lock:
            self._tamper_alerts = snapshot
        logger.info(f"Loaded {len(snapshot)} tamper alerts from external store")
        self._notify(TAMPER_ALERTS, {"snapshot": [a.to_dict() for a in snapshot]})

    # ------------------------------------------------------------------
    # FDA submissions
    # ------------------------------------------------------------------

    def list_fda_submissions(self) -> List[FDASubmission]:
        with self._lock:
            return list(self._fda_submissions)

    def add_fda_submission(self, submission: FDASubmission):
        with self._lock:
            self._fda_submissions.insert(0, submission)
        self._notify(FDA_SUBMISSIONS, submission)

    def add_random_fda_submission(self) -> FDASubmission:
        with self._lock:
            drug = pick(self.rng, DRUGS)
            suffix = "".join(pick(self.rng, SUBMISSION_ALPHABET) for _ in range(6))
            submission = FDASubmission(
                id=new_id("f", self.rng),
                drug_name=drug.name,
                submission_type=SubmissionType.ANNUAL_REPORT,
                submission_number=f"FDA-{suffix}",
                submitted_by=MANUFACTURER,
                submission_date=today(self.clock),
                status=SubmissionStatus.SUBMITTED,
            )

        self.add_fda_submission(submission)
        return submission

    def update_submission_status(
        self,
        submission_id: str,
        status: Union[SubmissionStatus, str],
        approval_date: Optional[str] = None,
    ) -> FDASubmission:
        status = SubmissionStatus(status)
        if status == SubmissionStatus.APPROVED and approval_date is None:
            approval_date = today(self.clock)

        with self._lock:
            for index, submission in enumerate(self._fda_submissions):
                if submission.id == submission_id:
                    updated = replace(
                        submission,
                        status=status,
                        approval_date=approval_date or submission.approval_date,
                    )
                    self._fda_submissions[index] = updated
                    break
            else:
                raise UnknownRecordError(submission_id)

        self._notify(FDA_SUBMISSIONS, updated)
        return updated

    # ------------------------------------------------------------------
    # Quality checks
    # ------------------------------------------------------------------

    def list_quality_checks(self) -> List[QualityCheck]:
        with self._lock:
            return list(self._quality_checks)

    def add_quality_check(self, check: QualityCheck):
        with self._lock:
            self._quality_checks.insert(0, check)
        self._notify(QUALITY_CHECKS, check)

    def add_random_quality_check(self, batch_number: Optional[str] = None) -> QualityCheck:
        with self._lock:
            target = batch_number or (self._batches[0].batch_number if self._batches else "BATCH-000")
            result = CheckResult.PASSED if self.rng.random() > QC_FAILURE_RATE else CheckResult.FAILED
            check = QualityCheck(
                id=new_id("q", self.rng),
                batch_number=target,
                check_type=pick(self.rng, (CheckType.PRODUCTION, CheckType.INCOMING, CheckType.OUTGOING, CheckType.RANDOM)),
                result=result,
                inspector_name="Auto Inspector",
                stakeholder_name=MANUFACTURER,
                timestamp=now_iso(self.clock),
            )

        self.add_quality_check(check)
        return check

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def set_blockchain_enabled(self, enabled: bool):
        if not isinstance(enabled, bool):
            raise ValueError(f"enabled must be a boolean, got {enabled!r}")
        self.blockchain_enabled = enabled

    def overview(self) -> Dict[str, Any]:
        with self._lock:
            by_status: Dict[str, int] = {}
            for batch in self._batches:
                by_status[batch.status.value] = by_status.get(batch.status.value, 0) + 1
            return {
                "total_batches": len(self._batches),
                "batches_by_status": by_status,
                "active_alerts": sum(1 for a in self._tamper_alerts if a.is_active),
                "active_sensors": len({r.sensor_id for r in self._iot_readings}),
                "quality_checks": len(self._quality_checks),
                "pending_submissions": sum(
                    1 for s in self._fda_submissions
                    if s.status in (SubmissionStatus.SUBMITTED, SubmissionStatus.UNDER_REVIEW)
                ),
                "blockchain_enabled": self.blockchain_enabled,
            }
