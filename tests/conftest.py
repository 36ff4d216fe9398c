from datetime import date
from itertools import count

import pytest

from app import create_app
from models import db
from models.enums import RoleName, TimeOfDay
from models.service import Service
from models.user import Role, User
from security.password import hash_password
from services import bookings
from services.errors import ExternalServiceError
from services.gateway import PaymentGateway, PaymentLink

PASSWORD = "correct-horse-battery"
JOB_DAY = date(2025, 6, 1)
ALL_SLOTS = [t.value for t in TimeOfDay]


class FakeGateway(PaymentGateway):
    name = "fake"

    def __init__(self):
        self.calls = []
        self.fail = False

    def create_payment_link(self, order_code, amount, description, cancel_url, return_url):
        self.calls.append({
            "order_code": order_code,
            "amount": amount,
            "description": description,
            "cancel_url": cancel_url,
            "return_url": return_url,
        })
        if self.fail:
            raise ExternalServiceError("Payment gateway unavailable")
        return PaymentLink(checkout_url=f"https://pay.example/{order_code}", reference=str(order_code))


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
        "CREATE_TABLES_ON_STARTUP": True,
        "BCRYPT_ROUNDS": 4,
        "CLIENT_URL": "https://client.example",
        "LOG_LEVEL": "WARNING",
    })
    app.extensions["payment_gateway"] = FakeGateway()

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    return app.extensions["payment_gateway"]


@pytest.fixture
def make_user(app):
    seq = count(1)

    def _make(*roles, email=None):
        n = next(seq)
        user = User(
            email=email or f"user{n}@example.com",
            password_hash=hash_password(PASSWORD),
            full_name=f"User {n}",
        )
        for name in roles:
            user.roles.append(Role.query.filter_by(name=RoleName(name).value).one())
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def customer(make_user):
    return make_user(RoleName.CUSTOMER)


@pytest.fixture
def cameraman(make_user):
    return make_user(RoleName.CAMERAMAN)


@pytest.fixture
def admin(make_user):
    return make_user(RoleName.ADMIN)


@pytest.fixture
def make_service(app):
    def _make(cameraman, amount=500000, day=JOB_DAY, slots=None, title="Wedding cinematic"):
        service = Service(
            cameraman_id=cameraman.id,
            title=title,
            amount=amount,
            date_get_job=day,
            time_of_day=list(ALL_SLOTS if slots is None else slots),
        )
        db.session.add(service)
        db.session.commit()
        return service

    return _make


@pytest.fixture
def service(make_service, cameraman):
    return make_service(cameraman)


@pytest.fixture
def book(gateway):
    """Create a PAYING booking through the lifecycle manager."""
    def _book(customer, cameraman, service, slot="morning", day=JOB_DAY):
        return bookings.create_booking(customer, cameraman.id, service.id, day, slot, gateway)

    return _book


@pytest.fixture
def login(client):
    def _login(user):
        resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": f"Bearer {resp.get_json()['token']}"}

    return _login
