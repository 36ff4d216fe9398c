import hashlib
import hmac
import json
import time
from datetime import timedelta

from models import db
from models.audit_log import AuditLog
from models.booking import Booking
from models.db import utcnow
from models.enums import BookingStatus, MembershipTier
from models.user import User
from services import pending_transactions as pt
from services.gateway import PayOSGateway

from tests.conftest import PASSWORD


def _booking_body(cameraman, service, slot="morning"):
    return {
        "cameraman_id": cameraman.id,
        "service_id": service.id,
        "scheduled_date": "2025-06-01",
        "time_of_day": slot,
    }


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_login_and_me(client, customer, login):
    headers = login(customer)

    me = client.get("/auth/me", headers=headers)

    assert me.status_code == 200
    assert me.get_json()["email"] == customer.email
    assert me.get_json()["roles"] == ["CUSTOMER"]


def test_bad_credentials(client, customer):
    resp = client.post("/auth/login", json={"email": customer.email, "password": "wrong"})

    assert resp.status_code == 401
    assert AuditLog.query.filter_by(action="LOGIN_FAIL").count() == 1


def test_logout_revokes_the_token(client, customer, login):
    headers = login(customer)

    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/me", headers=headers).status_code == 401


def test_create_booking_over_http(client, customer, cameraman, service, login, gateway):
    resp = client.post("/bookings", json=_booking_body(cameraman, service), headers=login(customer))

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["booking"]["status"] == "PAYING"
    assert body["payment"]["status"] == "PROCESSING"
    assert body["paymentUrl"] == f"https://pay.example/{body['orderCode']}"
    assert gateway.calls[-1]["return_url"] == "https://client.example/activity-history?tab=bookings"


def test_create_booking_requires_login(client, cameraman, service):
    resp = client.post("/bookings", json=_booking_body(cameraman, service))

    assert resp.status_code == 401


def test_create_booking_requires_customer_role(client, cameraman, service, login):
    resp = client.post("/bookings", json=_booking_body(cameraman, service), headers=login(cameraman))

    assert resp.status_code == 403


def test_taken_slot_is_a_400(client, make_user, customer, cameraman, service, login):
    client.post("/bookings", json=_booking_body(cameraman, service), headers=login(customer))

    rival = make_user("CUSTOMER")
    resp = client.post("/bookings", json=_booking_body(cameraman, service), headers=login(rival))

    assert resp.status_code == 400
    assert resp.get_json() == {"error": "Cameraman already has a booking at this time"}


def test_gateway_outage_is_a_502(client, customer, cameraman, service, login, gateway):
    gateway.fail = True

    resp = client.post("/bookings", json=_booking_body(cameraman, service), headers=login(customer))

    assert resp.status_code == 502
    assert Booking.query.count() == 1


def test_missing_booking_fields(client, customer, cameraman, login):
    resp = client.post("/bookings", json={"cameraman_id": cameraman.id}, headers=login(customer))

    assert resp.status_code == 400


def test_complete_booking_over_http(client, customer, cameraman, service, login, book):
    checkout = book(customer, cameraman, service)
    headers = login(cameraman)

    early = client.patch(f"/bookings/{checkout.booking.id}/complete", headers=headers)
    assert early.status_code == 400

    client.post("/payments/webhook", json={"code": "00", "data": {"orderCode": checkout.order_code, "amount": 500000}})

    resp = client.patch(f"/bookings/{checkout.booking.id}/complete", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["booking"]["status"] == "COMPLETED"

    missing = client.patch("/bookings/9999/complete", headers=headers)
    assert missing.status_code == 404


def test_list_and_get_bookings(client, customer, cameraman, service, login, book):
    for slot in ("morning", "afternoon", "evening"):
        book(customer, cameraman, service, slot=slot)
    headers = login(customer)

    resp = client.get("/bookings?page=1&limit=2", headers=headers)

    body = resp.get_json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {"pageIndex": 1, "pageSize": 2, "totalPages": 2, "totalResults": 3}

    booking_id = body["data"][0]["id"]
    assert client.get(f"/bookings/{booking_id}", headers=headers).status_code == 200
    assert client.get("/bookings?role=admin", headers=headers).status_code == 400


def test_free_slots_endpoint(client, customer, cameraman, service, book):
    book(customer, cameraman, service, slot="afternoon")

    resp = client.post("/services/free-slots", json={"service_id": service.id, "date": "2025-06-01"})
    assert resp.status_code == 200
    assert resp.get_json() == ["morning", "evening"]

    legacy = client.post("/services/free-slots", json={"service_id": service.id, "date_get_job": "2025-06-02"})
    assert legacy.get_json() == []

    assert client.post("/services/free-slots", json={"service_id": service.id}).status_code == 400
    assert client.post("/services/free-slots", json={"service_id": 999, "date": "2025-06-01"}).status_code == 404


def test_webhook_settles_once(client, customer, cameraman, service, book):
    checkout = book(customer, cameraman, service)
    body = {"code": "00", "data": {"orderCode": checkout.order_code, "amount": 500000}}

    first = client.post("/payments/webhook", json=body)
    second = client.post("/payments/webhook", json=body)

    assert first.status_code == 200
    assert first.get_json() == {"success": True, "processed": True}
    assert second.status_code == 200
    assert second.get_json() == {"success": True, "processed": False}
    db.session.expire_all()
    assert db.session.get(Booking, checkout.booking.id).status == BookingStatus.REQUESTED.value


def test_webhook_rejects_malformed_body(client):
    assert client.post("/payments/webhook", json={"code": "00"}).status_code == 400
    assert client.post("/payments/webhook", data="nope", content_type="text/plain").status_code == 400


def test_webhook_for_unknown_order_is_acknowledged(client):
    resp = client.post("/payments/webhook", json={"code": "00", "data": {"orderCode": 31337, "amount": 1}})

    assert resp.status_code == 200
    assert resp.get_json()["processed"] is False


def test_webhook_signature_verification(app, client, customer, service):
    app.config["PAYOS_VERIFY_WEBHOOK_SIGNATURE"] = True
    app.extensions["payment_gateway"] = PayOSGateway("client", "key", "checksum")
    pt.register(
        4242, "buy_service", customer.id, pt.BuyServicePayload(service_id=service.id, amount=service.amount),
    )
    data = {"orderCode": 4242, "amount": 500000}
    good = hmac.new(b"checksum", b"amount=500000&orderCode=4242", hashlib.sha256).hexdigest()

    forged = client.post("/payments/webhook", json={"code": "00", "data": data, "signature": "0" * 64})
    assert forged.status_code == 400
    assert pt.is_pending(4242)

    resp = client.post("/payments/webhook", json={"code": "00", "data": data, "signature": good})
    assert resp.status_code == 200
    assert resp.get_json()["processed"] is True


def _stripe_header(payload: str, secret: str) -> str:
    ts = int(time.time())
    sig = hmac.new(secret.encode(), f"{ts}.{payload}".encode(), hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def test_stripe_webhook_settles_booking(app, client, customer, cameraman, service, book):
    app.config["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
    checkout = book(customer, cameraman, service)
    payload = json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {
            "id": "cs_1",
            "amount_total": 500000,
            "metadata": {"order_code": str(checkout.order_code)},
        }},
    })

    resp = client.post(
        "/webhooks/stripe", data=payload, content_type="application/json",
        headers={"Stripe-Signature": _stripe_header(payload, "whsec_test")},
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"received": True, "processed": True}
    db.session.expire_all()
    assert db.session.get(Booking, checkout.booking.id).status == BookingStatus.REQUESTED.value


def test_stripe_webhook_rejects_bad_signature(app, client):
    app.config["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
    payload = json.dumps({"type": "checkout.session.completed", "data": {"object": {}}})

    bad = client.post(
        "/webhooks/stripe", data=payload, content_type="application/json",
        headers={"Stripe-Signature": _stripe_header(payload, "whsec_other")},
    )
    missing = client.post("/webhooks/stripe", data=payload, content_type="application/json")

    assert bad.status_code == 400
    assert missing.status_code == 400


def test_stripe_webhook_ignores_other_events(app, client):
    app.config["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
    payload = json.dumps({"type": "invoice.paid", "data": {"object": {}}})

    resp = client.post(
        "/webhooks/stripe", data=payload, content_type="application/json",
        headers={"Stripe-Signature": _stripe_header(payload, "whsec_test")},
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"received": True}


def test_membership_checkout_and_activation(client, cameraman, login, gateway):
    resp = client.post("/payments/membership", json={"membership_type": "SIX_MONTH"}, headers=login(cameraman))

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["amount"] == 499000
    assert gateway.calls[-1]["description"] == "Membership payment"

    client.post("/payments/webhook", json={"code": "00", "data": {"orderCode": body["orderCode"], "amount": 499000}})

    db.session.expire_all()
    assert db.session.get(User, cameraman.id).membership_subscription == MembershipTier.SIX_MONTH.value


def test_membership_rules(client, customer, cameraman, login):
    assert client.post("/payments/membership", json={"membership_type": "SIX_MONTH"},
                       headers=login(customer)).status_code == 403
    assert client.post("/payments/membership", json={"membership_type": "NORMAL"},
                       headers=login(cameraman)).status_code == 400


def test_buy_service_checkout(client, customer, service, login):
    resp = client.post("/payments/buy-service", json={"service_id": service.id}, headers=login(customer))

    assert resp.status_code == 200
    assert resp.get_json()["amount"] == service.amount
    assert pt.is_pending(resp.get_json()["orderCode"])


def test_payment_listing_endpoints(client, customer, cameraman, admin, service, login, book):
    checkout = book(customer, cameraman, service)

    mine = client.get("/payments/me", headers=login(customer)).get_json()
    assert [p["id"] for p in mine["data"]] == [checkout.payment.id]

    assert client.get("/payments", headers=login(customer)).status_code == 403
    everything = client.get("/payments?status=PROCESSING", headers=login(admin)).get_json()
    assert everything["pagination"]["totalResults"] == 1

    one = client.get(f"/payments/{checkout.payment.id}", headers=login(cameraman))
    assert one.get_json()["booking_id"] == checkout.booking.id


def test_notifications_endpoint(client, customer, cameraman, service, login, book):
    checkout = book(customer, cameraman, service)
    client.post("/payments/webhook", json={"code": "00", "data": {"orderCode": checkout.order_code, "amount": 500000}})

    resp = client.get("/notifications", headers=login(cameraman))

    body = resp.get_json()
    assert body["pagination"]["totalResults"] == 1
    assert body["data"][0]["type"] == "booking_requested"
    assert client.get("/notifications", headers=login(customer)).get_json()["data"] == []


def test_cli_create_user(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["create-user", "Crew@Example.com", PASSWORD, "--role", "cameraman",
                                 "--role", "customer"])

    assert result.exit_code == 0, result.output
    user = User.query.filter_by(email="crew@example.com").one()
    assert user.role_names == {"CAMERAMAN", "CUSTOMER"}

    again = runner.invoke(args=["create-user", "crew@example.com", PASSWORD])
    assert again.exit_code != 0
    assert "already exists" in again.output


def test_cli_sweep(app, customer, cameraman, service, book):
    checkout = book(customer, cameraman, service)
    checkout.booking.created_at = utcnow() - timedelta(hours=1)
    db.session.commit()

    result = app.test_cli_runner().invoke(args=["sweep-stale-bookings", "--ttl-minutes", "30"])

    assert result.exit_code == 0, result.output
    assert "Expired 1 booking(s)" in result.output
    db.session.expire_all()
    assert db.session.get(Booking, checkout.booking.id).status == BookingStatus.PAY_CANCELLED.value


def test_malformed_ids_are_rejected_over_http(client, customer, cameraman, service, login):
    headers = login(customer)

    as_object = dict(_booking_body(cameraman, service), cameraman_id={"x": 1})
    resp = client.post("/bookings", json=as_object, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "cameraman_id must be an integer"}

    as_list = dict(_booking_body(cameraman, service), service_id=[service.id])
    assert client.post("/bookings", json=as_list, headers=headers).status_code == 400

    slots = client.post("/services/free-slots", json={"service_id": [service.id], "date": "2025-06-01"})
    assert slots.status_code == 400
    assert slots.get_json() == {"error": "service_id must be an integer"}

    bought = client.post("/payments/buy-service", json={"service_id": {"id": service.id}}, headers=headers)
    assert bought.status_code == 400
    assert Booking.query.count() == 0


def test_webhook_rejects_non_integer_order_codes(client, customer, cameraman, service, book):
    checkout = book(customer, cameraman, service)

    for data in ({"orderCode": checkout.order_code + 0.9, "amount": 500000},
                 {"orderCode": checkout.order_code, "amount": True}):
        resp = client.post("/payments/webhook", json={"code": "00", "data": data})
        assert resp.status_code == 400

    assert pt.is_pending(checkout.order_code)


def test_stripe_webhook_acknowledges_malformed_order_code(app, client):
    app.config["STRIPE_WEBHOOK_SECRET"] = "whsec_test"
    payload = json.dumps({
        "type": "checkout.session.completed",
        "data": {"object": {"id": "cs_2", "amount_total": 1000, "metadata": {"order_code": "not-a-number"}}},
    })

    resp = client.post(
        "/webhooks/stripe", data=payload, content_type="application/json",
        headers={"Stripe-Signature": _stripe_header(payload, "whsec_test")},
    )

    assert resp.status_code == 200
    assert resp.get_json() == {"received": True}
