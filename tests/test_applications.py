# tests/test_applications.py
import pytest
from beanie import PydanticObjectId

from bikerental.models.application import Application
from bikerental.models.enum import ApplicationStatus


async def test_submit_application_creates_pending(client, student, student_headers, application_payload):
    response = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Application submitted successfully!"
    assert body["status"] == "PENDING"

    stored = await Application.get(PydanticObjectId(body["applicationId"]))
    assert stored is not None
    assert stored.user_id == student.id
    assert stored.sr_code == "21-12345"
    assert stored.date_of_birth == "2003-05-14"
    assert stored.gwa_last_semester == 1.75


@pytest.mark.parametrize("field", ["firstName", "srCode", "email", "province", "durationOfUse"])
async def test_missing_required_field_is_named(client, student_headers, application_payload, field):
    del application_payload[field]
    response = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == f"Missing required field: {field}"


async def test_first_missing_field_in_form_order_is_reported(client, student_headers, application_payload):
    application_payload["barangay"] = "   "
    application_payload["sex"] = ""
    response = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Missing required field: sex"


async def test_optional_fields_may_be_blank(client, student_headers, application_payload):
    application_payload["gwaLastSemester"] = ""
    application_payload["monthlyFamilyIncome"] = ""
    application_payload["middleName"] = ""
    response = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert response.status_code == 201

    stored = await Application.get(PydanticObjectId(response.json()["applicationId"]))
    assert stored.gwa_last_semester is None
    assert stored.monthly_family_income is None
    assert stored.middle_name is None


@pytest.mark.parametrize("date_of_birth", ["14/05/2003", "2003-05-14not-a-date", "2003-02-30", "2003-05-14 junk"])
async def test_invalid_date_of_birth(client, student_headers, application_payload, date_of_birth):
    application_payload["dateOfBirth"] = date_of_birth
    response = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid field: dateOfBirth"
    assert await Application.find_all().count() == 0


async def test_second_application_while_pending_is_rejected(client, student_headers, application_payload):
    first = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert first.status_code == 201

    second = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert second.status_code == 400
    assert second.json()["message"] == (
        "You already have an active application. Please wait for it to be processed."
    )
    assert await Application.find_all().count() == 1


@pytest.mark.parametrize("blocking_status", [ApplicationStatus.UNDER_REVIEW, ApplicationStatus.APPROVED])
async def test_non_terminal_statuses_block_resubmission(
    client, student_headers, application_payload, blocking_status
):
    first = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    application = await Application.get(PydanticObjectId(first.json()["applicationId"]))
    await application.set({Application.status: blocking_status})

    second = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert second.status_code == 400


async def test_resubmission_allowed_after_rejection(client, student_headers, application_payload):
    first = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    application = await Application.get(PydanticObjectId(first.json()["applicationId"]))
    await application.set({Application.status: ApplicationStatus.REJECTED})

    second = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    assert second.status_code == 201
    assert second.json()["applicationId"] != first.json()["applicationId"]


async def test_submit_requires_authentication(client, application_payload):
    response = await client.post("/api/v1/applications", json=application_payload)
    assert response.status_code == 401


async def test_list_only_own_applications(
    client, student_headers, other_headers, application_payload
):
    await client.post("/api/v1/applications", json=application_payload, headers=student_headers)

    mine = await client.get("/api/v1/applications", headers=student_headers)
    assert mine.status_code == 200
    assert len(mine.json()) == 1
    assert mine.json()[0]["srCode"] == "21-12345"
    assert mine.json()[0]["status"] == "PENDING"

    theirs = await client.get("/api/v1/applications", headers=other_headers)
    assert theirs.json() == []


async def test_read_application_owner_admin_and_stranger(
    client, student_headers, other_headers, admin_headers, application_payload
):
    created = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    application_id = created.json()["applicationId"]
    url = f"/api/v1/applications/{application_id}"

    assert (await client.get(url, headers=student_headers)).status_code == 200
    assert (await client.get(url, headers=admin_headers)).status_code == 200

    stranger = await client.get(url, headers=other_headers)
    assert stranger.status_code == 404
    assert stranger.json()["message"] == "Application not found"


async def test_read_application_invalid_id(client, student_headers):
    response = await client.get("/api/v1/applications/not-an-id", headers=student_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid application ID format."


async def test_application_pdf_download(client, student_headers, application_payload):
    created = await client.post("/api/v1/applications", json=application_payload, headers=student_headers)
    application_id = created.json()["applicationId"]

    response = await client.get(f"/api/v1/applications/{application_id}/pdf", headers=student_headers)
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "attachment" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")
