"""
API Tests for the PharmaChain dashboard.

Run with: pytest tests/test_api.py -v
"""

import re


# ==========================================
# Dashboard
# ==========================================


class TestDashboard:
    """Test overview and settings endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.get_json()["status"] == "healthy"

    def test_overview_from_seed(self, client):
        data = client.get("/api/overview").get_json()

        assert data["total_batches"] == 3
        assert data["active_alerts"] == 2
        assert data["blockchain_enabled"] is False

    def test_toggle_blockchain(self, client):
        response = client.put("/api/settings/blockchain", json={"enabled": True})
        assert response.status_code == 200
        assert client.get("/api/settings/blockchain").get_json() == {"blockchain_enabled": True}

    def test_toggle_rejects_string_flag(self, client):
        response = client.put("/api/settings/blockchain", json={"enabled": "false"})
        assert response.status_code == 400
        assert response.get_json()["success"] is False
        assert client.get("/api/settings/blockchain").get_json() == {"blockchain_enabled": False}

    def test_toggle_requires_body(self, client):
        response = client.put("/api/settings/blockchain", data="nope", content_type="text/plain")
        assert response.status_code == 400
        assert response.get_json()["success"] is False

    def test_unknown_route_is_json(self, client):
        response = client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found"}


# ==========================================
# Batches
# ==========================================


class TestBatchEndpoints:
    """Test batch listing, creation and history."""

    def test_list_and_filter(self, client):
        assert client.get("/api/batches").get_json()["count"] == 3

        approved = client.get("/api/batches?status=approved").get_json()
        assert [b["id"] for b in approved["batches"]] == ["b3"]

        insulin = client.get("/api/batches?q=insulin").get_json()
        assert insulin["batches"][0]["batch_number"] == "BATCH-2024-003"

    def test_create_batch(self, client):
        response = client.post("/api/batches", json={
            "batch_number": "BATCH-2024-004",
            "drug_name": "Metformin 850mg",
            "quantity": 1000,
            "manufacturing_date": "2024-03-01",
            "expiry_date": "2026-03-01",
        })

        assert response.status_code == 201
        batch = response.get_json()["batch"]
        assert batch["drug_id"] == "d5"
        assert batch["current_quantity"] == 1000
        assert batch["status"] == "in_production"
        assert batch["qr_code"] == "QR-BATCH-2024-004"
        assert client.get("/api/batches").get_json()["batches"][0]["id"] == batch["id"]

    def test_create_batch_missing_fields(self, client):
        response = client.post("/api/batches", json={"batch_number": "BATCH-X"})
        assert response.status_code == 400

    def test_random_batch(self, client):
        response = client.post("/api/batches/random")
        assert response.status_code == 201

        batch = response.get_json()["batch"]
        assert re.match(r"^BATCH-\d{4}-\d{2}-\d{3}$", batch["batch_number"])

        events = client.get(f"/api/batches/{batch['id']}/events").get_json()["events"]
        assert [e["event_type"] for e in events] == ["manufactured"]

    def test_get_batch_with_lifecycle(self, client):
        data = client.get("/api/batches/b1").get_json()

        assert data["batch"]["batch_number"] == "BATCH-2024-001"
        assert data["lifecycle"] == {"last_event": "transferred", "location": "Delhi, India"}

    def test_get_missing_batch(self, client):
        assert client.get("/api/batches/b404").status_code == 404

    def test_manual_event_approves(self, client):
        response = client.post("/api/batches/b2/events", json={
            "event_type": "quality_check",
            "from_stakeholder": "PharmaCorp Manufacturing",
            "to_stakeholder": "Current Holder",
            "location": "Mumbai, India",
            "quantity": 50000,
            "qc_result": "passed",
            "inspector_name": "Dr. M. Khan",
            "approver": "FDA Regulatory Authority",
        })

        assert response.status_code == 201
        assert response.get_json()["event"]["approver"] == "FDA Regulatory Authority"
        assert client.get("/api/batches/b2").get_json()["batch"]["status"] == "approved"

        checks = client.get("/api/quality/checks?batch_number=BATCH-2024-002").get_json()
        assert checks["count"] == 2

    def test_manual_event_unknown_batch(self, client):
        response = client.post("/api/batches/b404/events", json={"event_type": "received"})
        assert response.status_code == 404

    def test_manual_event_bad_type(self, client):
        response = client.post("/api/batches/b1/events", json={"event_type": "teleported"})
        assert response.status_code == 400

    def test_status_override(self, client):
        response = client.put("/api/batches/b1/status", json={"status": "delivered"})
        assert response.status_code == 200
        assert response.get_json()["batch"]["status"] == "delivered"


# ==========================================
# Events
# ==========================================


class TestEventEndpoints:
    """Test supply chain event endpoints."""

    def test_list_events(self, client):
        data = client.get("/api/events").get_json()
        assert data["count"] == 9

        approved = client.get("/api/events?event_type=approved").get_json()
        assert {e["id"] for e in approved["events"]} == {"e3", "e8"}

    def test_random_event_for_batch(self, client):
        response = client.post("/api/events/random", json={"batch_id": "b1"})
        assert response.status_code == 201

        event = response.get_json()["event"]
        assert event["event_type"] == "received"
        assert len(event["blockchain_hash"]) == 64

    def test_random_event_unknown_batch(self, client):
        response = client.post("/api/events/random", json={"batch_id": "b404"})
        assert response.status_code == 404

    def test_post_event_applies_side_effect(self, client):
        response = client.post("/api/events", json={
            "batch_id": "b2",
            "batch_number": "BATCH-2024-002",
            "event_type": "approved",
            "from_stakeholder": "FDA Regulatory Authority",
            "to_stakeholder": "PharmaCorp Manufacturing",
            "quantity": 50000,
            "location": "Mumbai, India",
        })

        assert response.status_code == 201
        assert response.get_json()["event"]["id"].startswith("e")
        assert client.get("/api/batches/b2").get_json()["batch"]["status"] == "approved"


# ==========================================
# IoT
# ==========================================


class TestIoTEndpoints:
    """Test sensor catalogue and readings."""

    def test_sensor_catalogue(self, client):
        data = client.get("/api/iot/sensors").get_json()
        assert data["count"] == 4
        assert data["sensors"][0]["unit"] == "°C"

    def test_readings_filters(self, client):
        assert client.get("/api/iot/readings").get_json()["count"] == 6
        assert client.get("/api/iot/readings?sensor_id=s1").get_json()["count"] == 2
        assert client.get("/api/iot/readings?alerts_only=true").get_json()["count"] == 2

    def test_random_reading(self, client):
        response = client.post("/api/iot/readings/random", json={"sensor_id": "s1"})
        assert response.status_code == 201

        reading = response.get_json()["reading"]
        assert reading["sensor_id"] == "s1"
        assert 2 <= reading["value"] <= 8

        readings = client.get("/api/iot/readings").get_json()["readings"]
        assert readings[-1]["id"] == reading["id"]

    def test_random_reading_unknown_sensor(self, client):
        response = client.post("/api/iot/readings/random", json={"sensor_id": "s99"})
        assert response.status_code == 404

    def test_summary(self, client):
        summary = client.get("/api/iot/summary").get_json()["sensors"]
        assert summary["s3"]["alert_ratio"] == 0.5


# ==========================================
# Alerts, submissions, quality checks
# ==========================================


class TestAlertEndpoints:
    """Test tamper alert endpoints."""

    def test_active_filter(self, client):
        assert client.get("/api/alerts?active=true").get_json()["count"] == 2
        assert client.get("/api/alerts?active=false").get_json()["count"] == 1

    def test_transition(self, client):
        response = client.put("/api/alerts/a1/status", json={"status": "investigating"})
        assert response.status_code == 200
        assert response.get_json()["alert"]["status"] == "investigating"

    def test_illegal_transition(self, client):
        response = client.put("/api/alerts/a3/status", json={"status": "open"})
        assert response.status_code == 400
        assert "cannot go from resolved" in response.get_json()["error"]

    def test_random_alert(self, client):
        response = client.post("/api/alerts/random", json={"batch_id": "b1"})
        alert = response.get_json()["alert"]

        assert response.status_code == 201
        assert alert["batch_number"] == "BATCH-2024-001"
        assert alert["alert_type"] in ("temperature_violation", "shock_detected")


class TestSubmissionAndQualityEndpoints:
    """Test FDA submission and quality check endpoints."""

    def test_random_submission(self, client):
        response = client.post("/api/fda/submissions/random")
        assert response.status_code == 201
        assert response.get_json()["submission"]["status"] == "submitted"

    def test_approve_submission(self, client):
        response = client.put("/api/fda/submissions/f2/status", json={"status": "approved"})
        submission = response.get_json()["submission"]

        assert response.status_code == 200
        assert submission["approval_date"]

    def test_missing_submission(self, client):
        response = client.put("/api/fda/submissions/f404/status", json={"status": "approved"})
        assert response.status_code == 404

    def test_create_submission_defaults_to_draft(self, client):
        response = client.post("/api/fda/submissions", json={
            "drug_name": "Insulin Glargine",
            "submission_type": "amendment",
            "submission_number": "FDA-AMD-2024-020",
            "submitted_by": "PharmaCorp Manufacturing",
        })
        assert response.status_code == 201
        assert response.get_json()["submission"]["status"] == "draft"

    def test_random_quality_check(self, client):
        response = client.post("/api/quality/checks/random", json={"batch_number": "BATCH-2024-001"})
        check = response.get_json()["check"]

        assert response.status_code == 201
        assert check["batch_number"] == "BATCH-2024-001"
        assert check["result"] in ("passed", "failed")


class TestRegistryEndpoint:
    """Test reference data for the dashboard forms."""

    def test_registry(self, client):
        data = client.get("/api/registry").get_json()

        assert len(data["drugs"]) == 5
        assert "FDA Regulatory Authority" in data["stakeholder_names"]
        assert data["locations"][0] == "Mumbai, India"
        assert "quality_check" in data["event_types"]


class TestAppFactory:
    """Test configuration and store wiring."""

    def test_injected_store(self):
        from pharmachain.app import create_app
        from pharmachain.services.supply_chain import SupplyChainStore

        store = SupplyChainStore(seed_data=False)
        app = create_app("testing", store=store)

        assert app.extensions["supply_chain_store"] is store
        assert app.test_client().get("/api/overview").get_json()["total_batches"] == 0

    def test_testing_config(self, app):
        assert app.config["TESTING"] is True
        assert app.config["RANDOM_SEED"] == 1234
        assert "alert_sync" not in app.extensions

    def test_unknown_config_falls_back(self):
        from pharmachain.config import DevelopmentConfig, get_config

        assert get_config("staging") is DevelopmentConfig
