"""
Supply Chain API Routes
=======================

REST endpoints over the supply chain store.

Endpoints:
- Dashboard overview, settings and reference data
- Batches, their events and status overrides
- Supply chain events (manual and generated)
- IoT readings and sensor summaries
- Tamper alerts and their status transitions
- FDA submissions
- Quality checks
"""

import logging
from dataclasses import asdict
from functools import wraps

from flask import Blueprint, current_app, jsonify, request

from ..services.supply_chain import (
    Batch,
    BatchStatus,
    EventType,
    FDASubmission,
    InvalidTransitionError,
    IoTReading,
    QualityCheck,
    SupplyChainEvent,
    TamperAlert,
    UnknownRecordError,
)
from ..services.supply_chain.identifiers import generate_blockchain_hash, new_id, now_iso
from ..services.supply_chain.registry import (
    DRUGS,
    MANUFACTURER,
    SENSORS,
    STAKEHOLDERS,
    find_drug,
    locations,
    stakeholder_names,
)

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def get_store():
    return current_app.extensions["supply_chain_store"]


def _body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _serialize(records):
    return [r.to_dict() for r in records]


def api_errors(view):
    """Translate store errors into JSON responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except UnknownRecordError as e:
            return jsonify({"success": False, "error": f"Not found: {e.args[0]}"}), 404
        except InvalidTransitionError as e:
            return jsonify({"success": False, "error": str(e)}), 400
        except (TypeError, ValueError, KeyError) as e:
            logger.error(f"Bad request to {request.path}: {e}")
            return jsonify({"success": False, "error": str(e)}), 400

    return wrapper


def _fill(data, prefix, timestamp_field=None):
    store = get_store()
    data = dict(data)
    data.setdefault("id", new_id(prefix, store.rng))
    if timestamp_field:
        data.setdefault(timestamp_field, now_iso(store.clock))
    return data


# ================== Dashboard ==================

@api_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "healthy"})


@api_bp.route("/overview", methods=["GET"])
def overview():
    """Dashboard counters."""
    return jsonify(get_store().overview())


@api_bp.route("/registry", methods=["GET"])
def registry():
    """Reference data for the dashboard's forms."""
    return jsonify({
        "drugs": [asdict(d) for d in DRUGS],
        "stakeholders": [asdict(s) for s in STAKEHOLDERS],
        "stakeholder_names": stakeholder_names(),
        "locations": locations(),
        "event_types": [t.value for t in EventType],
    })


@api_bp.route("/settings/blockchain", methods=["GET"])
def get_blockchain_setting():
    return jsonify({"blockchain_enabled": get_store().blockchain_enabled})


@api_bp.route("/settings/blockchain", methods=["PUT"])
@api_errors
def set_blockchain_setting():
    """Toggle the display-only blockchain indicator."""
    data = _body()
    store = get_store()
    store.set_blockchain_enabled(data["enabled"])
    return jsonify({"blockchain_enabled": store.blockchain_enabled})


# ================== Batches ==================

@api_bp.route("/batches", methods=["GET"])
def list_batches():
    """
    List batches, newest first.

    Query Parameters:
        status: Filter by batch status
        q: Case-insensitive match on batch number or drug name
    """
    batches = get_store().list_batches()

    status = request.args.get("status")
    if status:
        batches = [b for b in batches if b.status.value == status]

    query = request.args.get("q", "").lower()
    if query:
        batches = [
            b for b in batches
            if query in b.batch_number.lower() or query in b.drug_name.lower()
        ]

    return jsonify({"batches": _serialize(batches), "count": len(batches)})


@api_bp.route("/batches", methods=["POST"])
@api_errors
def create_batch():
    """
    Create a batch.

    Request body:
    {
        "batch_number": "BATCH-2024-004",
        "drug_name": "Paracetamol 500mg",
        "quantity": 1000,
        "manufacturing_date": "2024-03-01",
        "expiry_date": "2026-03-01"
    }
    """
    data = _fill(_body(), "b")
    drug = find_drug(data.get("drug_name", ""))
    data.setdefault("drug_id", drug.id if drug else "d1")
    data.setdefault("manufacturer_id", "1")
    data.setdefault("manufacturer_name", MANUFACTURER)
    data.setdefault("current_quantity", data.get("quantity"))
    data.setdefault("status", BatchStatus.IN_PRODUCTION.value)

    batch = Batch.from_dict(data)
    get_store().add_batch(batch)
    return jsonify({"success": True, "batch": batch.to_dict()}), 201


@api_bp.route("/batches/random", methods=["POST"])
def create_random_batch():
    batch = get_store().add_random_batch()
    return jsonify({"success": True, "batch": batch.to_dict()}), 201


@api_bp.route("/batches/<batch_id>", methods=["GET"])
def get_batch(batch_id):
    store = get_store()
    batch = store.get_batch(batch_id)
    if batch is None:
        return jsonify({"error": "Batch not found"}), 404

    state = store.lifecycle_state(batch_id)
    return jsonify({
        "batch": batch.to_dict(),
        "lifecycle": {"last_event": state.last_event, "location": state.location},
    })


@api_bp.route("/batches/<batch_id>/events", methods=["GET"])
def get_batch_events(batch_id):
    """Custody history of one batch, oldest first."""
    events = get_store().events_for_batch(batch_id)
    return jsonify({"events": _serialize(events), "count": len(events)})


@api_bp.route("/batches/<batch_id>/events", methods=["POST"])
@api_errors
def record_batch_event(batch_id):
    """
    Record a manual supply chain event.

    Request body:
    {
        "event_type": "quality_check",
        "from_stakeholder": "PharmaCorp Manufacturing",
        "to_stakeholder": "MedSupply Distributors",
        "location": "Mumbai, India",
        "quantity": 1000,
        "qc_result": "passed",
        "inspector_name": "Dr. A. Rao",
        "approver": "FDA Regulatory Authority"
    }
    """
    data = _body()
    event = get_store().record_manual_event(
        batch_id,
        event_type=data["event_type"],
        from_stakeholder=data.get("from_stakeholder", ""),
        to_stakeholder=data.get("to_stakeholder", ""),
        location=data.get("location", ""),
        quantity=int(data.get("quantity", 0)),
        qc_result=data.get("qc_result"),
        inspector_name=data.get("inspector_name"),
        approver=data.get("approver"),
        notes=data.get("notes"),
    )
    return jsonify({"success": True, "event": event.to_dict()}), 201


@api_bp.route("/batches/<batch_id>/status", methods=["PUT"])
@api_errors
def set_batch_status(batch_id):
    """Administrative status override."""
    batch = get_store().set_batch_status(batch_id, _body()["status"])
    return jsonify({"success": True, "batch": batch.to_dict()})


# ================== Supply Chain Events ==================

@api_bp.route("/events", methods=["GET"])
def list_events():
    events = get_store().list_supply_events()

    event_type = request.args.get("event_type")
    if event_type:
        events = [e for e in events if e.event_type.value == event_type]

    return jsonify({"events": _serialize(events), "count": len(events)})


@api_bp.route("/events", methods=["POST"])
@api_errors
def create_event():
    """Append a fully formed event as-is."""
    store = get_store()
    data = _fill(_body(), "e", "timestamp")
    data.setdefault("blockchain_hash", generate_blockchain_hash(store.rng))

    event = SupplyChainEvent.from_dict(data)
    store.add_supply_event(event)
    return jsonify({"success": True, "event": event.to_dict()}), 201


@api_bp.route("/events/random", methods=["POST"])
@api_errors
def create_random_event():
    """Next legal event for the given batch, or a random one."""
    store = get_store()
    data = request.get_json(silent=True) or {}

    batch = None
    if data.get("batch_id"):
        batch = store.get_batch(data["batch_id"])
        if batch is None:
            raise UnknownRecordError(data["batch_id"])

    event = store.add_random_supply_event(batch)
    return jsonify({"success": True, "event": event.to_dict()}), 201


# ================== IoT ==================

@api_bp.route("/iot/sensors", methods=["GET"])
def list_sensors():
    sensors = [
        {
            "id": s.sensor_id,
            "name": s.name,
            "type": s.sensor_type,
            "unit": s.unit,
            "min": s.min_value,
            "max": s.max_value,
            "location": s.location,
        }
        for s in SENSORS.values()
    ]
    return jsonify({"sensors": sensors, "count": len(sensors)})


@api_bp.route("/iot/readings", methods=["GET"])
def list_readings():
    """
    List readings in time order.

    Query Parameters:
        sensor_id: Filter by sensor
        alerts_only: Only readings flagged as alerts (default: false)
    """
    readings = get_store().list_iot_readings()

    sensor_id = request.args.get("sensor_id")
    if sensor_id:
        readings = [r for r in readings if r.sensor_id == sensor_id]
    if request.args.get("alerts_only", "false").lower() == "true":
        readings = [r for r in readings if r.is_alert]

    return jsonify({"readings": _serialize(readings), "count": len(readings)})


@api_bp.route("/iot/readings", methods=["POST"])
@api_errors
def create_reading():
    reading = IoTReading.from_dict(_fill(_body(), "r", "timestamp"))
    get_store().add_iot_reading(reading)
    return jsonify({"success": True, "reading": reading.to_dict()}), 201


@api_bp.route("/iot/readings/random", methods=["POST"])
def create_random_reading():
    data = request.get_json(silent=True) or {}
    sensor_id = data.get("sensor_id")
    if sensor_id and sensor_id not in SENSORS:
        return jsonify({"success": False, "error": f"Unknown sensor {sensor_id}"}), 404

    reading = get_store().add_random_iot_reading(sensor_id)
    return jsonify({"success": True, "reading": reading.to_dict()}), 201


@api_bp.route("/iot/summary", methods=["GET"])
def sensor_summary():
    return jsonify({"sensors": get_store().sensor_summary()})


# ================== Tamper Alerts ==================

@api_bp.route("/alerts", methods=["GET"])
def list_alerts():
    """
    List tamper alerts, newest first.

    Query Parameters:
        active: true for open/investigating only, false for resolved/false_alarm only
    """
    alerts = get_store().list_tamper_alerts()

    active = request.args.get("active")
    if active is not None:
        want_active = active.lower() == "true"
        alerts = [a for a in alerts if a.is_active == want_active]

    return jsonify({"alerts": _serialize(alerts), "count": len(alerts)})


@api_bp.route("/alerts", methods=["POST"])
@api_errors
def create_alert():
    data = _fill(_body(), "a", "timestamp")
    data.setdefault("status", "open")
    alert = TamperAlert.from_dict(data)
    get_store().add_tamper_alert(alert)
    return jsonify({"success": True, "alert": alert.to_dict()}), 201


@api_bp.route("/alerts/random", methods=["POST"])
def create_random_alert():
    data = request.get_json(silent=True) or {}
    alert = get_store().add_random_tamper_alert(data.get("batch_id"))
    return jsonify({"success": True, "alert": alert.to_dict()}), 201


@api_bp.route("/alerts/<alert_id>/status", methods=["PUT"])
@api_errors
def update_alert_status(alert_id):
    alert = get_store().transition_alert(alert_id, _body()["status"])
    return jsonify({"success": True, "alert": alert.to_dict()})


# ================== FDA Submissions ==================

@api_bp.route("/fda/submissions", methods=["GET"])
def list_submissions():
    submissions = get_store().list_fda_submissions()

    status = request.args.get("status")
    if status:
        submissions = [s for s in submissions if s.status.value == status]

    return jsonify({"submissions": _serialize(submissions), "count": len(submissions)})


@api_bp.route("/fda/submissions", methods=["POST"])
@api_errors
def create_submission():
    store = get_store()
    data = _fill(_body(), "f")
    data.setdefault("submission_date", store.clock().date().isoformat())
    data.setdefault("status", "draft")
    submission = FDASubmission.from_dict(data)
    store.add_fda_submission(submission)
    return jsonify({"success": True, "submission": submission.to_dict()}), 201


@api_bp.route("/fda/submissions/random", methods=["POST"])
def create_random_submission():
    submission = get_store().add_random_fda_submission()
    return jsonify({"success": True, "submission": submission.to_dict()}), 201


@api_bp.route("/fda/submissions/<submission_id>/status", methods=["PUT"])
@api_errors
def update_submission_status(submission_id):
    data = _body()
    submission = get_store().update_submission_status(
        submission_id, data["status"], data.get("approval_date")
    )
    return jsonify({"success": True, "submission": submission.to_dict()})


# ================== Quality Checks ==================

@api_bp.route("/quality/checks", methods=["GET"])
def list_quality_checks():
    checks = get_store().list_quality_checks()

    batch_number = request.args.get("batch_number")
    if batch_number:
        checks = [c for c in checks if c.batch_number == batch_number]

    return jsonify({"checks": _serialize(checks), "count": len(checks)})


@api_bp.route("/quality/checks", methods=["POST"])
@api_errors
def create_quality_check():
    check = QualityCheck.from_dict(_fill(_body(), "q", "timestamp"))
    get_store().add_quality_check(check)
    return jsonify({"success": True, "check": check.to_dict()}), 201


@api_bp.route("/quality/checks/random", methods=["POST"])
def create_random_quality_check():
    data = request.get_json(silent=True) or {}
    check = get_store().add_random_quality_check(data.get("batch_number"))
    return jsonify({"success": True, "check": check.to_dict()}), 201
