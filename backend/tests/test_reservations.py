from fastapi.testclient import TestClient
from sqlalchemy.sql import operators
from sqlalchemy.sql.elements import BindParameter, False_, Null, True_

import turfbook.main as main_module
from turfbook.booking.pricing import RateSchedule
from turfbook.booking.reservations import fetch_bookings_for_window
from turfbook.db.models import Booking, Court
from turfbook.main import app


client = TestClient(app)

SCHEDULE = RateSchedule(weekday_day=600, weekday_night=900, weekend_day=700, weekend_night=1100)

_COMPARATORS = {
    operators.eq: lambda value, expected: value == expected,
    operators.in_op: lambda value, expected: value in expected,
    operators.is_: lambda value, expected: value is expected,
    operators.is_not: lambda value, expected: value is not expected,
}
_CONSTANTS = {True_: True, False_: False, Null: None}


def _matches(row, criterion):
    if isinstance(criterion.right, BindParameter):
        expected = criterion.right.effective_value
    else:
        expected = _CONSTANTS[type(criterion.right)]
    value = getattr(row, criterion.left.key)
    return _COMPARATORS[criterion.operator](value, expected)


class FakeQuery:
    def __init__(self, session, model, criteria=()):
        self.session = session
        self.model = model
        self.criteria = criteria

    def all(self):
        return [
            row
            for row in self.session.store.get(self.model, [])
            if all(_matches(row, criterion) for criterion in self.criteria)
        ]

    def first(self):
        rows = self.all()
        return rows[0] if rows else None

    def filter(self, *criteria):
        return FakeQuery(self.session, self.model, (*self.criteria, *criteria))


class FakeSession:
    def __init__(self, bookings=None, courts=None):
        self.store = {
            Booking: list(bookings or []),
            Court: list(courts if courts is not None else [Court(id=1, name="Court A", is_active=True)]),
        }
        self.next_id = {Booking: len(self.store[Booking]) + 1}
        self.commits = 0

    def query(self, model):
        return FakeQuery(self, model)

    def add(self, row):
        model = type(row)
        if getattr(row, "id", None) is None and model in self.next_id:
            row.id = self.next_id[model]
            self.next_id[model] += 1
        if model in self.store and row not in self.store[model]:
            self.store[model].append(row)

    def commit(self):
        self.commits += 1

    def rollback(self):
        return None

    def close(self):
        return None


def _booking(booking_id, date, start, end, court_id=1, is_approved=None):
    return Booking(
        id=booking_id,
        customer_name="Existing",
        sport="football",
        people_count=10,
        date=date,
        start_time=start,
        end_time=end,
        duration=60,
        court_id=court_id,
        price=1000,
        is_approved=is_approved,
    )


def _cart_item(date="2024-06-10", start="17:30", end="18:30", duration=1, price=750, court_id=1):
    return {
        "customer_name": "Ravi",
        "sport": "cricket",
        "people_count": 6,
        "date": date,
        "start_time": start,
        "end_time": end,
        "duration": duration,
        "court_id": court_id,
        "court_name": "Court A",
        "price": price,
    }


def _use_session(monkeypatch, fake_session):
    monkeypatch.setattr(main_module, "SessionLocal", lambda: fake_session)
    monkeypatch.setattr(main_module, "default_rate_schedule", lambda: SCHEDULE)


def test_reserve_creates_pending_bookings(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item()]})

    body = response.json()
    assert response.status_code == 200
    assert body["ok"] is True
    assert body["data"]["bookings"][0]["status"] == "pending"
    assert body["data"]["total"] == 750
    stored = fake_session.store[Booking]
    assert len(stored) == 1
    assert stored[0].is_approved is None
    assert stored[0].duration == 60
    assert fake_session.commits == 1


def test_reserve_stores_server_side_price(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item(price=1)]})

    assert response.status_code == 200
    assert fake_session.store[Booking][0].price == 750


def test_reserve_rejects_slot_taken_by_previous_night_booking(monkeypatch):
    existing = _booking(1, "2024-06-10", "23:00", "01:00")
    fake_session = FakeSession(bookings=[existing])
    _use_session(monkeypatch, fake_session)

    response = client.post(
        "/v1/cart/reserve",
        json={"cart_items": [_cart_item(date="2024-06-11", start="00:30", end="01:30")]},
    )

    body = response.json()
    assert response.status_code == 409
    assert body["ok"] is False
    assert body["error_code"] == "SLOT_CONFLICT"
    assert fake_session.store[Booking] == [existing]
    assert fake_session.commits == 0


def test_reserve_ignores_rejected_and_other_court_bookings(monkeypatch):
    fake_session = FakeSession(
        bookings=[
            _booking(1, "2024-06-10", "17:00", "19:00", is_approved=False),
            _booking(2, "2024-06-10", "17:00", "19:00", court_id=2),
        ]
    )
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item()]})

    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_reserve_rejects_cart_that_overlaps_itself(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    response = client.post(
        "/v1/cart/reserve",
        json={
            "cart_items": [
                _cart_item(start="17:00", end="18:00"),
                _cart_item(start="17:30", end="18:30"),
            ]
        },
    )

    body = response.json()
    assert response.status_code == 409
    assert [c["start_time"] for c in body["data"]["conflicts"]] == ["17:30"]
    assert fake_session.store[Booking] == []


def test_reserve_empty_cart(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.post("/v1/cart/reserve", json={"cart_items": []})

    assert response.status_code == 400
    assert response.json()["error_code"] == "EMPTY_CART"


def test_reserve_invalid_item(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item(duration=5)]})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"


def test_reserve_storage_failure_returns_system_down(monkeypatch):
    fake_session = FakeSession()

    def _fail():
        raise RuntimeError("db down")

    fake_session.commit = _fail
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item()]})

    assert response.status_code == 500
    assert response.json()["error_code"] == "SYSTEM_DOWN"


def test_check_conflicts_reports_ok_and_conflict(monkeypatch):
    fake_session = FakeSession(bookings=[_booking(1, "2024-06-10", "18:00", "19:00")])
    _use_session(monkeypatch, fake_session)

    clear = client.post(
        "/v1/cart/check-conflicts",
        json={"cart_items": [_cart_item(start="16:00", end="17:00")]},
    )
    taken = client.post("/v1/cart/check-conflicts", json={"cart_items": [_cart_item()]})

    assert clear.status_code == 200
    assert clear.json()["ok"] is True
    assert taken.status_code == 409
    assert taken.json()["error_code"] == "SLOT_CONFLICT"


def test_add_cart_item_prices_and_totals(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.post(
        "/v1/cart/items",
        json={
            "customer_name": "Ravi",
            "sport": "cricket",
            "people_count": 4,
            "date": "2024-06-10",
            "time": "17:30",
            "duration": 1,
            "court_id": 1,
            "cart_items": [_cart_item(start="10:00", end="11:00", price=600)],
        },
    )

    body = response.json()
    assert response.status_code == 200
    assert body["data"]["item"]["price"] == 750
    assert body["data"]["item"]["end_time"] == "18:30"
    assert len(body["data"]["cart_items"]) == 2
    assert body["data"]["totals"]["subtotal"] == 1350


def test_add_cart_item_unknown_court(monkeypatch):
    _use_session(monkeypatch, FakeSession(courts=[]))

    response = client.post(
        "/v1/cart/items",
        json={
            "customer_name": "Ravi",
            "sport": "cricket",
            "people_count": 4,
            "date": "2024-06-10",
            "time": "17:30",
            "duration": 1,
            "court_id": 7,
        },
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "COURT_NOT_FOUND"


def test_availability_endpoint(monkeypatch):
    fake_session = FakeSession(bookings=[_booking(1, "2024-06-10", "23:00", "01:00")])
    _use_session(monkeypatch, fake_session)

    taken = client.get(
        "/v1/availability",
        params={"date": "2024-06-11", "time": "00:30", "duration": "1"},
    ).json()
    closed = client.get(
        "/v1/availability",
        params={"date": "2024-06-10", "time": "01:45", "duration": "0.5"},
    ).json()
    free = client.get(
        "/v1/availability",
        params={"date": "2024-06-10", "time": "17:30", "duration": "1"},
    ).json()

    assert taken["data"]["available"] is False
    assert closed["data"]["available"] is False
    assert free["data"] == {"available": True, "estimated_price": 750}


def test_availability_endpoint_invalid_args(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.get("/v1/availability", params={"date": "2024-06-10", "time": "17:30"})

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"


def test_pricing_quote(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.get(
        "/v1/pricing/quote",
        params={"date": "2024-06-15", "time": "10:00", "duration": "2"},
    )

    assert response.json() == {"ok": True, "data": {"price": 1400}}


def test_booking_conflicts_endpoint(monkeypatch):
    overlapping = _booking(1, "2024-06-10", "23:00", "01:00")
    fake_session = FakeSession(bookings=[overlapping, _booking(2, "2024-06-11", "12:00", "13:00")])
    _use_session(monkeypatch, fake_session)

    response = client.post(
        "/v1/bookings/conflicts",
        json={"date": "2024-06-11", "start_time": "00:30", "duration": 1, "court_id": 1},
    )

    body = response.json()
    assert response.status_code == 200
    assert [c["id"] for c in body["data"]["conflicts"]] == [1]


def test_courts_lists_available_courts(monkeypatch):
    fake_session = FakeSession(
        bookings=[_booking(1, "2024-06-10", "17:00", "19:00", court_id=1)],
        courts=[
            Court(id=1, name="Court A", is_active=True),
            Court(id=2, name="Court B", is_active=True),
            Court(id=3, name="Court C", is_active=False),
        ],
    )
    _use_session(monkeypatch, fake_session)

    all_courts = client.get("/v1/courts").json()
    available = client.get(
        "/v1/courts",
        params={"date": "2024-06-10", "time": "17:30", "duration": "1"},
    ).json()

    assert [c["id"] for c in all_courts["data"]["courts"]] == [1, 2]
    assert [c["id"] for c in available["data"]["courts"]] == [2]


def test_request_id_is_echoed():
    response = client.get("/health", headers={"x-request-id": "req-123"})

    assert response.status_code == 200
    assert response.headers["x-request-id"] == "req-123"


def test_reserve_rejects_end_time_that_does_not_match_duration(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    response = client.post(
        "/v1/cart/reserve",
        json={"cart_items": [_cart_item(start="10:00", end="23:00", duration=1, price=600)]},
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_ARGS"
    assert fake_session.store[Booking] == []
    assert fake_session.commits == 0


def test_reserved_booking_only_blocks_its_own_hour(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    client.post(
        "/v1/cart/reserve",
        json={"cart_items": [_cart_item(start="10:00", end="11:00", price=600)]},
    )
    afternoon = client.get(
        "/v1/availability",
        params={"date": "2024-06-10", "time": "15:00", "duration": "1"},
    ).json()

    assert fake_session.store[Booking][0].end_time == "11:00"
    assert afternoon["data"]["available"] is True


def test_reserve_rejects_unknown_court(monkeypatch):
    fake_session = FakeSession()
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item(court_id=99)]})

    body = response.json()
    assert response.status_code == 404
    assert body["error_code"] == "COURT_NOT_FOUND"
    assert body["data"]["court_ids"] == [99]
    assert fake_session.store[Booking] == []


def test_reserve_rejects_inactive_court(monkeypatch):
    fake_session = FakeSession(courts=[Court(id=1, name="Court A", is_active=False)])
    _use_session(monkeypatch, fake_session)

    response = client.post("/v1/cart/reserve", json={"cart_items": [_cart_item()]})

    assert response.status_code == 404
    assert response.json()["error_code"] == "COURT_NOT_FOUND"
    assert fake_session.store[Booking] == []


def test_check_conflicts_rejects_unknown_court(monkeypatch):
    _use_session(monkeypatch, FakeSession())

    response = client.post(
        "/v1/cart/check-conflicts", json={"cart_items": [_cart_item(court_id=5)]}
    )

    assert response.status_code == 404
    assert response.json()["error_code"] == "COURT_NOT_FOUND"


def test_court_detail(monkeypatch):
    _use_session(
        monkeypatch,
        FakeSession(
            courts=[
                Court(id=1, name="Court A", is_active=True),
                Court(id=2, name="Court B", is_active=False),
            ]
        ),
    )

    found = client.get("/v1/courts/2")
    missing = client.get("/v1/courts/9")
    invalid = client.get("/v1/courts/abc")

    assert found.status_code == 200
    assert found.json()["data"]["court"] == {"id": 2, "name": "Court B", "is_active": False}
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "COURT_NOT_FOUND"
    assert invalid.status_code == 400
    assert invalid.json()["error_code"] == "INVALID_ARGS"


def test_fetch_bookings_for_window_selects_court_dates_and_live_bookings():
    in_window = _booking(1, "2024-06-09", "23:00", "01:00")
    approved = _booking(2, "2024-06-11", "10:00", "11:00", is_approved=True)
    fake_session = FakeSession(
        bookings=[
            in_window,
            approved,
            _booking(3, "2024-06-10", "10:00", "11:00", is_approved=False),
            _booking(4, "2024-06-10", "10:00", "11:00", court_id=2),
            _booking(5, "2024-06-12", "10:00", "11:00"),
        ]
    )

    rows = fetch_bookings_for_window(db=fake_session, court_id=1, day="2024-06-10")

    assert rows == [in_window, approved]
