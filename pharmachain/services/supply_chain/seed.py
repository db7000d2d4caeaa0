"""
Seed collections for a fresh store.

Each batch's events follow the lifecycle graph so generated events can
continue from where the seed leaves off.
"""

import hashlib
from typing import List

from .records import (
    Batch,
    FDASubmission,
    IoTReading,
    QualityCheck,
    SupplyChainEvent,
    TamperAlert,
)
from .registry import DISTRIBUTOR, MANUFACTURER, REGULATOR


def _hash(seed: str) -> str:
    return hashlib.sha256(seed.encode()).hexdigest()


def seed_batches() -> List[Batch]:
    return [
        Batch.from_dict({
            "id": "b3", "batch_number": "BATCH-2024-003",
            "drug_id": "d3", "drug_name": "Insulin Glargine",
            "manufacturer_id": "1", "manufacturer_name": MANUFACTURER,
            "manufacturing_date": "2024-02-20", "expiry_date": "2025-08-20",
            "quantity": 10000, "current_quantity": 9500, "status": "approved",
        }),
        Batch.from_dict({
            "id": "b2", "batch_number": "BATCH-2024-002",
            "drug_id": "d2", "drug_name": "Amoxicillin 250mg",
            "manufacturer_id": "1", "manufacturer_name": MANUFACTURER,
            "manufacturing_date": "2024-02-01", "expiry_date": "2026-02-01",
            "quantity": 50000, "current_quantity": 50000, "status": "quality_check",
        }),
        Batch.from_dict({
            "id": "b1", "batch_number": "BATCH-2024-001",
            "drug_id": "d1", "drug_name": "Paracetamol 500mg",
            "manufacturer_id": "1", "manufacturer_name": MANUFACTURER,
            "manufacturing_date": "2024-01-15", "expiry_date": "2026-01-15",
            "quantity": 100000, "current_quantity": 85000, "status": "in_transit",
        }),
    ]


def _event(event_id, batch_id, batch_number, event_type, timestamp, location,
           quantity, from_stakeholder="Current Holder", to_stakeholder="Current Holder", **extra):
    return SupplyChainEvent.from_dict({
        "id": event_id, "batch_id": batch_id, "batch_number": batch_number,
        "event_type": event_type, "from_stakeholder": from_stakeholder,
        "to_stakeholder": to_stakeholder, "quantity": quantity, "location": location,
        "timestamp": timestamp, "blockchain_hash": _hash(event_id), **extra,
    })


def seed_supply_events() -> List[SupplyChainEvent]:
    events = [
        _event("e1", "b1", "BATCH-2024-001", "manufactured", "2024-01-15T08:00:00+00:00", "Mumbai, India", 100000,
               MANUFACTURER, MANUFACTURER),
        _event("e2", "b1", "BATCH-2024-001", "quality_check", "2024-01-16T10:30:00+00:00", "Mumbai, India", 100000,
               qc_result="passed", inspector_name="Dr. A. Rao"),
        _event("e3", "b1", "BATCH-2024-001", "approved", "2024-01-18T09:00:00+00:00", "Mumbai, India", 100000),
        _event("e4", "b1", "BATCH-2024-001", "transferred", "2024-01-20T14:15:00+00:00", "Delhi, India", 15000,
               MANUFACTURER, DISTRIBUTOR),
        _event("e5", "b2", "BATCH-2024-002", "manufactured", "2024-02-01T07:45:00+00:00", "Mumbai, India", 50000,
               MANUFACTURER, MANUFACTURER),
        _event("e9", "b2", "BATCH-2024-002", "quality_check", "2024-02-03T12:00:00+00:00", "Mumbai, India", 50000,
               qc_result="failed", inspector_name="Dr. M. Khan"),
        _event("e6", "b3", "BATCH-2024-003", "manufactured", "2024-02-20T06:00:00+00:00", "Mumbai, India", 10000,
               MANUFACTURER, MANUFACTURER),
        _event("e7", "b3", "BATCH-2024-003", "quality_check", "2024-02-22T11:00:00+00:00", "Mumbai, India", 10000,
               qc_result="passed", inspector_name="Dr. S. Iyer", approver=REGULATOR),
        _event("e8", "b3", "BATCH-2024-003", "approved", "2024-02-23T16:20:00+00:00", "Mumbai, India", 10000),
    ]
    return sorted(events, key=lambda e: e.timestamp, reverse=True)


def seed_iot_readings() -> List[IoTReading]:
    rows = [
        ("r1", "s1", "temperature", 5.2, "°C", "2024-03-01T10:00:00+00:00", False),
        ("r2", "s2", "humidity", 48.5, "%", "2024-03-01T10:00:00+00:00", False),
        ("r3", "s3", "shock", 0.3, "g", "2024-03-01T10:00:00+00:00", False),
        ("r4", "s4", "location", 0.0, "", "2024-03-01T10:00:00+00:00", False),
        ("r5", "s1", "temperature", 8.0, "°C", "2024-03-01T10:05:00+00:00", True),
        ("r6", "s3", "shock", 2.7, "g", "2024-03-01T10:05:00+00:00", True),
    ]
    return [
        IoTReading.from_dict(dict(zip(
            ("id", "sensor_id", "sensor_type", "value", "unit", "timestamp", "is_alert"), row
        )))
        for row in rows
    ]


def seed_tamper_alerts() -> List[TamperAlert]:
    return [
        TamperAlert.from_dict({
            "id": "a1", "batch_id": "b1", "batch_number": "BATCH-2024-001",
            "alert_type": "temperature_violation", "severity": "high",
            "description": "Cold chain excursion above 8°C for 12 minutes",
            "location": "Delhi, India", "status": "open",
            "timestamp": "2024-03-01T10:05:00+00:00",
        }),
        TamperAlert.from_dict({
            "id": "a2", "batch_id": "b3", "batch_number": "BATCH-2024-003",
            "alert_type": "shock_detected", "severity": "medium",
            "description": "Impact of 2.7g recorded during loading",
            "location": "Mumbai, India", "status": "investigating",
            "timestamp": "2024-02-28T15:40:00+00:00",
        }),
        TamperAlert.from_dict({
            "id": "a3", "batch_id": "b1", "batch_number": "BATCH-2024-001",
            "alert_type": "seal_broken", "severity": "low",
            "description": "Outer carton seal reported damaged on receipt",
            "location": "Delhi, India", "status": "resolved",
            "timestamp": "2024-01-21T09:10:00+00:00",
        }),
    ]


def seed_fda_submissions() -> List[FDASubmission]:
    return [
        FDASubmission.from_dict({
            "id": "f2", "drug_name": "Insulin Glargine", "submission_type": "amendment",
            "submission_number": "FDA-AMD-2024-014", "submitted_by": MANUFACTURER,
            "submission_date": "2024-02-10", "status": "under_review",
        }),
        FDASubmission.from_dict({
            "id": "f1", "drug_name": "Paracetamol 500mg", "submission_type": "new_drug",
            "submission_number": "FDA-NDA-2023-118", "submitted_by": MANUFACTURER,
            "submission_date": "2023-06-12", "status": "approved", "approval_date": "2023-11-30",
        }),
    ]


def seed_quality_checks() -> List[QualityCheck]:
    return [
        QualityCheck.from_dict({
            "id": "q2", "batch_number": "BATCH-2024-002", "check_type": "incoming",
            "result": "failed", "inspector_name": "Dr. M. Khan",
            "stakeholder_name": MANUFACTURER, "timestamp": "2024-02-03T12:00:00+00:00",
        }),
        QualityCheck.from_dict({
            "id": "q1", "batch_number": "BATCH-2024-001", "check_type": "production",
            "result": "passed", "inspector_name": "Dr. A. Rao",
            "stakeholder_name": MANUFACTURER, "timestamp": "2024-01-16T10:30:00+00:00",
        }),
    ]
