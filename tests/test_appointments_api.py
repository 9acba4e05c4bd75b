import smtplib

import pytest

from medique.core.config import settings
from medique.models import Appointment, Doctor
from tests.conftest import auth_headers, make_doctor, make_user

DATE = "2024-05-01"
TIME = "10:00"


@pytest.fixture
def patient(db_session):
    return make_user(db_session, "patient1@example.com", "Patient One")


@pytest.fixture
def other_patient(db_session):
    return make_user(db_session, "patient2@example.com", "Patient Two")


@pytest.fixture
def doctor(db_session):
    return make_doctor(db_session)


def book(client, user, doctor_id, slot_date=DATE, slot_time=TIME):
    return client.post(
        "/api/v1/appointments",
        json={"doctor_id": doctor_id, "slot_date": slot_date, "slot_time": slot_time},
        headers=auth_headers(user),
    )


class TestBookingEndpoint:

    def test_book_appointment(self, client, db_session, patient, doctor):
        response = book(client, patient, doctor.id)
        assert response.status_code == 200

        data = response.json()
        assert data["success"] is True
        appointment = db_session.query(Appointment).filter(Appointment.id == data["appointment_id"]).one()
        assert appointment.user_id == patient.id
        assert appointment.amount == doctor.fees

    def test_double_booking_is_reported(self, client, patient, other_patient, doctor):
        assert book(client, patient, doctor.id).status_code == 200

        response = book(client, other_patient, doctor.id)
        assert response.status_code == 409
        assert response.json() == {"success": False, "message": "Slot not available"}

    def test_missing_fields(self, client, patient, doctor):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "slot_date": DATE},
            headers=auth_headers(patient),
        )
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "All fields are required"}

    def test_overlong_slot_time(self, client, db_session, patient, doctor):
        response = book(client, patient, doctor.id, slot_time="T" * 21)
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert db_session.query(Appointment).count() == 0

    def test_unavailable_doctor(self, client, db_session, patient):
        doctor = make_doctor(db_session, available=False)

        response = book(client, patient, doctor.id)
        assert response.status_code == 409
        assert response.json()["message"] == "Doctor not available"

    def test_requires_authentication(self, client, doctor):
        response = client.post(
            "/api/v1/appointments",
            json={"doctor_id": doctor.id, "slot_date": DATE, "slot_time": TIME},
        )
        assert response.status_code in (401, 403)

    def test_booking_succeeds_when_email_delivery_fails(self, client, db_session, patient, doctor, monkeypatch):
        def broken_smtp(*args, **kwargs):
            raise OSError("connection refused")

        monkeypatch.setattr(settings, "SMTP_HOST", "smtp.example.com")
        monkeypatch.setattr(settings, "SMTP_USER", "noreply@example.com")
        monkeypatch.setattr(smtplib, "SMTP_SSL", broken_smtp)

        response = book(client, patient, doctor.id)
        assert response.status_code == 200
        assert db_session.query(Appointment).count() == 1


class TestListingEndpoint:

    def test_lists_own_appointments_newest_first(self, client, patient, other_patient, doctor):
        first = book(client, patient, doctor.id, slot_time="09:00").json()["appointment_id"]
        second = book(client, patient, doctor.id, slot_time="09:30").json()["appointment_id"]
        book(client, other_patient, doctor.id, slot_time="10:00")

        response = client.get("/api/v1/appointments", headers=auth_headers(patient))
        assert response.status_code == 200

        appointments = response.json()["appointments"]
        assert [a["id"] for a in appointments] == [second, first]
        assert appointments[0]["doctor"]["name"] == doctor.name
        assert appointments[0]["doctor"]["speciality"] == doctor.speciality
        assert appointments[0]["doctor"]["address"] == doctor.address
        assert appointments[0]["payment"] is False
        assert appointments[0]["cancelled"] is False


class TestCancellationEndpoint:

    def test_cancel_releases_slot(self, client, db_session, patient, other_patient, doctor):
        appointment_id = book(client, patient, doctor.id).json()["appointment_id"]

        response = client.post(
            "/api/v1/appointments/cancel",
            json={"appointment_id": appointment_id},
            headers=auth_headers(patient),
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

        db_doctor = db_session.query(Doctor).filter(Doctor.id == doctor.id).populate_existing().one()
        assert db_doctor.slots_booked == {DATE: []}

        assert book(client, other_patient, doctor.id).status_code == 200

    def test_cancel_someone_elses_appointment(self, client, db_session, patient, other_patient, doctor):
        appointment_id = book(client, patient, doctor.id).json()["appointment_id"]

        response = client.post(
            "/api/v1/appointments/cancel",
            json={"appointment_id": appointment_id},
            headers=auth_headers(other_patient),
        )
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Unauthorized action"}

        appointment = db_session.query(Appointment).filter(Appointment.id == appointment_id).one()
        assert appointment.cancelled is False

    def test_cancel_twice(self, client, patient, doctor):
        appointment_id = book(client, patient, doctor.id).json()["appointment_id"]
        payload = {"appointment_id": appointment_id}

        client.post("/api/v1/appointments/cancel", json=payload, headers=auth_headers(patient))
        response = client.post("/api/v1/appointments/cancel", json=payload, headers=auth_headers(patient))
        assert response.status_code == 409
        assert response.json()["message"] == "Appointment already cancelled"

    def test_cancel_unknown_appointment(self, client, patient):
        response = client.post(
            "/api/v1/appointments/cancel",
            json={"appointment_id": 4242},
            headers=auth_headers(patient),
        )
        assert response.status_code == 404
        assert response.json()["success"] is False
