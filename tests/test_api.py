"""Tests for the HTTP surface: routing, error mapping and the actor header."""

import logging
import re

import pytest


@pytest.fixture
def base(contractor):
    return f"/contractors/{contractor.id}"


@pytest.fixture
def quote_payload():
    return {
        "customer": {"name": "Pat Rivera", "email": "pat@example.com"},
        "title": "Furnace tune-up",
        "lineItems": [{"description": "Tune-up", "quantity": 1, "unitPrice": 500, "sku": "TUNE-1"}],
        "depositRequired": True,
        "depositType": "percentage",
        "depositValue": 20,
        "requiredSkills": ["hvac_repair"],
        "requiredCertifications": ["epa_608"],
        "status": "sent",
    }


@pytest.fixture
def accepted(client, base, quote_payload):
    quote = client.post(f"{base}/quotes", json=quote_payload).json()
    result = client.post(f"{base}/quotes/{quote['id']}/accept", json={}).json()
    return {"quote": quote, **result}


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_requests_are_logged_with_duration(self, client, caplog):
        caplog.set_level(logging.INFO, logger="fieldops.main")
        client.get("/health")
        assert re.search(r"GET /health - 200 \(\d+\.\dms\)", caplog.text)


class TestTeamEndpoints:
    """Team CRUD and eligibility over HTTP."""

    def test_add_and_list(self, client, base):
        response = client.post(f"{base}/team", json={
            "name": "Quinn Park", "phone": "(555) 201-3344", "email": "Quinn@Example.com",
        })
        assert response.status_code == 201
        member = response.json()
        assert member["phone"] == "+15552013344"
        assert member["email"] == "quinn@example.com"
        assert member["workingHours"]["monday"]["available"] is True

        listed = client.get(f"{base}/team").json()
        assert [m["id"] for m in listed] == [member["id"]]

    def test_invalid_phone_rejected(self, client, base):
        response = client.post(f"{base}/team", json={"name": "Bad Phone", "phone": "12345"})
        assert response.status_code == 422

    def test_update_normalizes_email(self, client, base, technicians):
        bob = technicians["bob"].id
        response = client.patch(f"{base}/team/{bob}", json={"email": " Bob.Lee@Example.COM "})
        assert response.status_code == 200
        assert response.json()["email"] == "bob.lee@example.com"

    def test_update_rejects_invalid_email(self, client, base, technicians):
        response = client.patch(f"{base}/team/{technicians['bob'].id}", json={"email": "not-an-email"})
        assert response.status_code == 422

    def test_availability(self, client, base, technicians):
        dave = technicians["dave"].id
        response = client.get(f"{base}/team/{dave}/availability", params={"date": "2024-06-03"})
        assert response.status_code == 200
        assert response.json() == {"available": False, "reason": "Time off: Vacation"}

    def test_eligible_ordering(self, client, base, technicians):
        response = client.post(f"{base}/team/eligible", json={
            "date": "2024-06-03",
            "requiredSkills": ["hvac_repair"],
            "requiredCertifications": ["epa_608"],
        })
        assert response.status_code == 200
        ranked = response.json()
        assert [t["name"] for t in ranked] == ["Alice Moreno", "Bob Lee"]
        assert ranked[0]["matchScore"] > ranked[1]["matchScore"]

    def test_eligibility_report(self, client, base, technicians):
        report = client.post(f"{base}/team/eligibility-report", json={
            "date": "2024-06-03", "requiredCertifications": ["epa_608"],
        }).json()
        rejected = {r["technicianId"]: r for r in report["rejected"]}
        assert rejected[technicians["carol"].id]["missingCerts"] == ["epa_608"]
        assert rejected[technicians["erin"].id]["expiredCerts"] == ["epa_608"]
        assert rejected[technicians["dave"].id]["reason"] == "Time off: Vacation"

    def test_skill_and_time_off(self, client, base, technicians):
        bob = technicians["bob"].id
        member = client.post(f"{base}/team/{bob}/skills", json={
            "skillId": "duct_cleaning", "proficiency": "advanced", "yearsExperience": 3,
        }).json()
        assert "duct_cleaning" in [s["skillId"] for s in member["skills"]]

        member = client.post(f"{base}/team/{bob}/time-off", json={
            "startDate": "2024-07-01", "endDate": "2024-07-03",
        }).json()
        assert member["timeOff"][0]["reason"] == "Time off"
        assert member["timeOff"][0]["id"].startswith("pto_")

    def test_time_off_end_before_start(self, client, base, technicians):
        response = client.post(f"{base}/team/{technicians['bob'].id}/time-off", json={
            "startDate": "2024-07-03", "endDate": "2024-07-01",
        })
        assert response.status_code == 422

    def test_unknown_member(self, client, base):
        response = client.get(f"{base}/team/nobody")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"


class TestQuoteEndpoints:
    """Quote creation and acceptance over HTTP."""

    def test_create_quote(self, client, base, quote_payload):
        response = client.post(f"{base}/quotes", json=quote_payload)
        assert response.status_code == 201
        quote = response.json()
        assert quote["total"] == 500
        assert quote["depositAmount"] == 100
        assert quote["lineItems"][0]["sku"] == "TUNE-1"

    def test_accept_then_duplicate(self, client, base, quote_payload):
        quote = client.post(f"{base}/quotes", json=quote_payload).json()
        first = client.post(f"{base}/quotes/{quote['id']}/accept", json={"customerMessage": "Thanks"})
        assert first.status_code == 201
        assert first.json()["jobNumber"].startswith("JOB-")

        second = client.post(f"{base}/quotes/{quote['id']}/accept", json={})
        assert second.status_code == 409
        assert second.json()["error"] == "AlreadyAccepted"

        jobs = client.get(f"{base}/jobs").json()
        assert len(jobs) == 1

    def test_accept_unknown_quote(self, client, base):
        response = client.post(f"{base}/quotes/missing/accept", json={})
        assert response.status_code == 404
        assert response.json() == {"detail": "Quote missing not found", "error": "NotFound"}

    def test_decline(self, client, base, quote_payload):
        quote = client.post(f"{base}/quotes", json=quote_payload).json()
        declined = client.post(f"{base}/quotes/{quote['id']}/decline", json={"reason": "Later"}).json()
        assert declined["status"] == "declined"
        assert declined["declineReason"] == "Later"


class TestJobEndpoints:
    """Job status, assignment and cancellation over HTTP."""

    def test_get_job(self, client, base, accepted):
        job = client.get(f"{base}/jobs/{accepted['jobId']}").json()
        assert job["status"] == "pending_schedule"
        assert job["depositAmount"] == 100
        assert job["allowedTransitions"] == ["scheduled", "cancellation_requested"]

    def test_assign_records_actor(self, client, base, accepted, technicians):
        response = client.post(
            f"{base}/jobs/{accepted['jobId']}/assign",
            json={"technicianId": technicians["alice"].id, "scheduledDate": "2024-06-03",
                  "scheduledTime": "09:00", "scheduledEndTime": "12:00"},
            headers={"X-Actor-Id": "dispatcher-7"},
        )
        assert response.status_code == 200
        assert response.json()["status"] == "scheduled"

        history = client.get(f"{base}/jobs/{accepted['jobId']}/history").json()
        assert history[-1]["actor"] == "dispatcher-7"
        assert history[-1]["fromStatus"] == "pending_schedule"

    def test_ineligible_assignment(self, client, base, accepted, technicians):
        response = client.post(
            f"{base}/jobs/{accepted['jobId']}/assign",
            json={"technicianId": technicians["carol"].id, "scheduledDate": "2024-06-03"},
        )
        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "IneligibleAssignment"
        assert body["details"]["missingCerts"] == ["epa_608"]

    def test_invalid_transition(self, client, base, accepted):
        response = client.post(f"{base}/jobs/{accepted['jobId']}/status", json={"status": "completed"})
        assert response.status_code == 409
        assert response.json()["error"] == "InvalidStateTransition"

    def test_default_actor(self, client, base, accepted):
        client.post(f"{base}/jobs/{accepted['jobId']}/cancel", json={"reason": "Moved"})
        history = client.get(f"{base}/jobs/{accepted['jobId']}/history").json()
        assert history[-1]["actor"] == "contractor"

    def test_cancellation_request_and_deny(self, client, base, accepted, technicians):
        job_id = accepted["jobId"]
        client.post(
            f"{base}/jobs/{job_id}/assign",
            json={"technicianId": technicians["bob"].id, "scheduledDate": "2024-06-03"},
        )
        cancel = client.post(f"{base}/jobs/{job_id}/cancel", json={"reason": "Moved"}).json()
        assert cancel["mode"] == "request"

        denied = client.post(f"{base}/jobs/{job_id}/cancellation/deny", json={"message": "Too late"})
        assert denied.status_code == 200
        assert denied.json()["status"] == "scheduled"

    def test_cancellation_approve(self, client, base, accepted):
        job_id = accepted["jobId"]
        client.post(f"{base}/jobs/{job_id}/cancel", json={"reason": "Moved"})
        approved = client.post(
            f"{base}/jobs/{job_id}/cancellation/approve", json={"refundAmount": 100}
        ).json()
        assert approved["status"] == "cancelled"
        assert approved["cancellation"]["refundAmount"] == 100
        assert approved["allowedTransitions"] == []

        quote = client.get(f"{base}/quotes/{accepted['quote']['id']}").json()
        assert quote["status"] == "accepted"
        assert quote["jobStatus"] == "cancelled"
