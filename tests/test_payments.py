import asyncio

import httpx
import pytest

from medique.clients.razorpay_client import (
    RazorpayAuthError, RazorpayClient, RazorpayError, RazorpayValidationError
)
from medique.core.exceptions import BadRequestError, ExternalServiceError
from medique.models import Appointment
from medique.services.booking_service import BookingService
from medique.services.payment_service import PaymentService, to_minor_units
from tests.conftest import auth_headers, make_doctor, make_user


@pytest.fixture
def patient(db_session):
    return make_user(db_session)


@pytest.fixture
def appointment(db_session, patient):
    doctor = make_doctor(db_session, fees=499.99)
    return BookingService(db_session).reserve_slot(patient.id, doctor.id, "2024-05-01", "10:00")


def test_minor_units():
    assert to_minor_units(50) == 5000
    assert to_minor_units(499.99) == 49999
    assert to_minor_units(0.1 + 0.2) == 30


class TestCreateOrder:

    def test_create_order(self, client, patient, appointment, gateway):
        response = client.post(
            "/api/v1/payments/orders",
            json={"appointment_id": appointment.id},
            headers=auth_headers(patient),
        )
        assert response.status_code == 200

        order = response.json()["order"]
        assert order["amount"] == 49999
        assert order["currency"] == "INR"
        assert order["receipt"] == str(appointment.id)

    def test_cancelled_appointment_gets_no_order(self, client, db_session, patient, appointment, gateway):
        BookingService(db_session).cancel_slot(patient.id, appointment.id)

        response = client.post(
            "/api/v1/payments/orders",
            json={"appointment_id": appointment.id},
            headers=auth_headers(patient),
        )
        assert response.status_code == 409
        assert response.json()["success"] is False
        assert gateway.orders == {}

    def test_unknown_appointment(self, client, patient, gateway):
        response = client.post(
            "/api/v1/payments/orders",
            json={"appointment_id": 777},
            headers=auth_headers(patient),
        )
        assert response.status_code == 404
        assert gateway.orders == {}


class TestVerifyPayment:

    def _order(self, client, patient, appointment):
        response = client.post(
            "/api/v1/payments/orders",
            json={"appointment_id": appointment.id},
            headers=auth_headers(patient),
        )
        return response.json()["order"]["id"]

    def test_paid_order_marks_appointment(self, client, db_session, patient, appointment, gateway):
        order_id = self._order(client, patient, appointment)
        gateway.mark_paid(order_id)

        response = client.post("/api/v1/payments/verify", json={"order_id": order_id}, headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.json()["appointment"]["payment"] is True

        db_session.refresh(appointment)
        assert appointment.payment is True

    def test_verifying_twice_is_harmless(self, client, db_session, patient, appointment, gateway):
        order_id = self._order(client, patient, appointment)
        gateway.mark_paid(order_id)

        for _ in range(2):
            response = client.post("/api/v1/payments/verify", json={"order_id": order_id}, headers=auth_headers(patient))
            assert response.status_code == 200
            assert response.json()["success"] is True

        db_session.refresh(appointment)
        assert appointment.payment is True

    def test_unpaid_order_changes_nothing(self, client, db_session, patient, appointment, gateway):
        order_id = self._order(client, patient, appointment)

        response = client.post("/api/v1/payments/verify", json={"order_id": order_id}, headers=auth_headers(patient))
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Payment failed"}

        db_session.refresh(appointment)
        assert appointment.payment is False

    def test_gateway_error_is_reported(self, client, patient, gateway):
        response = client.post("/api/v1/payments/verify", json={"order_id": "order_missing"}, headers=auth_headers(patient))
        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_paid_appointment_cannot_be_ordered_again(self, client, patient, appointment, gateway):
        order_id = self._order(client, patient, appointment)
        gateway.mark_paid(order_id)
        client.post("/api/v1/payments/verify", json={"order_id": order_id}, headers=auth_headers(patient))

        response = client.post(
            "/api/v1/payments/orders",
            json={"appointment_id": appointment.id},
            headers=auth_headers(patient),
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Appointment already paid"


class TestPaymentService:

    def test_confirmation_sent_once(self, db_session, appointment, gateway, notifier):
        service = PaymentService(db_session, gateway, notifier)
        order = asyncio.run(service.create_order(appointment.id))
        gateway.mark_paid(order["id"])

        asyncio.run(service.verify_payment(order["id"]))
        asyncio.run(service.verify_payment(order["id"]))

        assert [n.subject for n in notifier.sent] == ["Appointment Confirmed"]

    def test_failed_payment_sends_nothing(self, db_session, appointment, gateway, notifier):
        service = PaymentService(db_session, gateway, notifier)
        order = asyncio.run(service.create_order(appointment.id))

        with pytest.raises(BadRequestError):
            asyncio.run(service.verify_payment(order["id"]))

        assert notifier.sent == []
        assert db_session.query(Appointment).filter(Appointment.payment == True).count() == 0  # noqa: E712


class TestRazorpayClient:

    def _run_with_transport(self, handler, call):
        async def scenario():
            async with RazorpayClient() as client:
                await client._client.aclose()
                client._client = httpx.AsyncClient(
                    base_url=RazorpayClient.BASE_URL,
                    transport=httpx.MockTransport(handler),
                )
                return await call(client)

        return asyncio.run(scenario())

    def test_create_order_request(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["body"] = request.read()
            return httpx.Response(200, json={"id": "order_1", "status": "created", "receipt": "7"})

        order = self._run_with_transport(
            handler, lambda c: c.create_order(amount=5000, currency="INR", receipt="7")
        )

        assert order["id"] == "order_1"
        assert seen["path"] == "/v1/orders"
        assert b'"receipt":"7"' in seen["body"].replace(b" ", b"")

    def test_fetch_order_auth_failure(self):
        def handler(request):
            return httpx.Response(401, json={"error": {"description": "Authentication failed"}})

        with pytest.raises(RazorpayAuthError):
            self._run_with_transport(handler, lambda c: c.fetch_order("order_1"))

    def test_gateway_server_error_is_wrapped(self):
        def handler(request):
            return httpx.Response(503, text="upstream unavailable")

        with pytest.raises(RazorpayError) as exc_info:
            self._run_with_transport(handler, lambda c: c.fetch_order("order_1"))

        assert exc_info.value.error_code == "API_ERROR"

    def test_validation_error_without_json_body(self):
        def handler(request):
            return httpx.Response(400, text="<html>Bad Request</html>")

        with pytest.raises(RazorpayValidationError):
            self._run_with_transport(
                handler, lambda c: c.create_order(amount=5000, currency="INR", receipt="7")
            )

    def test_read_error_is_wrapped(self):
        def handler(request):
            raise httpx.ReadError("connection reset", request=request)

        with pytest.raises(RazorpayError) as exc_info:
            self._run_with_transport(handler, lambda c: c.fetch_order("order_1"))

        assert exc_info.value.error_code == "HTTP_ERROR"

    def test_gateway_outage_reported_as_bad_gateway(self, db_session, appointment):
        def handler(request):
            return httpx.Response(503, text="upstream unavailable")

        async def create(client):
            return await PaymentService(db_session, client).create_order(appointment.id)

        with pytest.raises(ExternalServiceError) as exc_info:
            self._run_with_transport(handler, create)

        assert exc_info.value.status_code == 502
