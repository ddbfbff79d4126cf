import json
import logging
import time
import uuid
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from turfbook.admin.bookings import (
    ListBookingsArgs,
    approve_booking,
    delete_booking,
    list_bookings,
    reject_booking,
    serialize_booking,
)
from turfbook.booking.availability import find_conflicting_bookings, is_available
from turfbook.booking.cart import (
    Cart,
    SlotQueryArgs,
    add_to_cart,
    build_cart_item,
    cart_totals,
    map_validation_error,
    parse_booking_form_args,
    parse_cart_items,
)
from turfbook.booking.pricing import calculate_price, default_rate_schedule
from turfbook.booking.reservations import (
    check_cart_conflicts,
    fetch_bookings_for_window,
    find_court,
    list_active_courts,
    list_available_courts,
    reserve_cart,
    serialize_court,
)
from turfbook.db.session import SessionLocal
from turfbook.security.dependencies import require_admin_api_key


def configure_logging() -> logging.Logger:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger("turfbook.backend")


logger = configure_logging()
app = FastAPI(title="Turf Booking Backend")


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    start_time = time.perf_counter()

    response = await call_next(request)

    duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["x-request-id"] = request_id

    logger.info(
        json.dumps(
            {
                "event": "http_request",
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            }
        )
    )
    return response


def _invalid_args(exc: ValidationError) -> JSONResponse:
    return JSONResponse(content={"ok": False, **map_validation_error(exc)}, status_code=400)


def _booking_not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "ok": False,
            "error_code": "BOOKING_NOT_FOUND",
            "human_message": "Booking not found.",
        },
    )


def _court_not_found() -> JSONResponse:
    return JSONResponse(
        status_code=404,
        content={
            "ok": False,
            "error_code": "COURT_NOT_FOUND",
            "human_message": "Court not found.",
        },
    )


def _system_down(human_message: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error_code": "SYSTEM_DOWN",
            "human_message": human_message,
        },
    )


@app.get("/health")
async def health():
    return JSONResponse(content={"ok": True})


@app.get("/v1/courts")
async def courts(
    date: str | None = None,
    time: str | None = None,
    duration: str | None = None,
) -> JSONResponse:
    db = SessionLocal()
    try:
        if date and time and duration:
            try:
                args = SlotQueryArgs.model_validate(
                    {"date": date, "time": time, "duration": duration}
                )
            except ValidationError as exc:
                return _invalid_args(exc)
            result = list_available_courts(
                db=db,
                day=args.date,
                start_time=args.time,
                duration_hours=args.duration,
            )
        else:
            result = list_active_courts(db)
        return JSONResponse(
            content={"ok": True, "data": {"courts": [serialize_court(c) for c in result]}}
        )
    finally:
        db.close()


@app.get("/v1/courts/{court_id}")
async def court_detail(court_id: str) -> JSONResponse:
    try:
        parsed_id = int(court_id)
    except ValueError:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error_code": "INVALID_ARGS",
                "human_message": "Invalid court ID.",
            },
        )

    db = SessionLocal()
    try:
        court = find_court(db=db, court_id=parsed_id)
    finally:
        db.close()
    if court is None:
        return _court_not_found()
    return JSONResponse(content={"ok": True, "data": {"court": serialize_court(court)}})


@app.get("/v1/bookings")
async def bookings(dates: str | None = None, status: str | None = None) -> JSONResponse:
    try:
        parsed_dates = json.loads(dates) if dates else None
    except json.JSONDecodeError:
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error_code": "INVALID_ARGS",
                "human_message": "dates must be a JSON list of YYYY-MM-DD strings.",
            },
        )

    try:
        args = ListBookingsArgs.model_validate({"dates": parsed_dates, "status": status})
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        rows = list_bookings(db=db, args=args)
        return JSONResponse(
            content={"ok": True, "data": {"bookings": [serialize_booking(b) for b in rows]}}
        )
    finally:
        db.close()


@app.get("/v1/availability")
async def availability(
    date: str | None = None,
    time: str | None = None,
    duration: str | None = None,
    court_id: int = 1,
) -> JSONResponse:
    try:
        args = SlotQueryArgs.model_validate(
            {"date": date, "time": time, "duration": duration, "court_id": court_id}
        )
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        existing = fetch_bookings_for_window(db=db, court_id=args.court_id, day=args.date)
    finally:
        db.close()

    available = is_available(args.date, args.time, args.duration, existing)
    return JSONResponse(
        content={
            "ok": True,
            "data": {
                "available": available,
                "estimated_price": calculate_price(
                    args.date, args.time, args.duration, default_rate_schedule()
                ),
            },
        }
    )


@app.get("/v1/pricing/quote")
async def pricing_quote(
    date: str | None = None,
    time: str | None = None,
    duration: str | None = None,
) -> JSONResponse:
    try:
        args = SlotQueryArgs.model_validate({"date": date, "time": time, "duration": duration})
    except ValidationError as exc:
        return _invalid_args(exc)

    price = calculate_price(args.date, args.time, args.duration, default_rate_schedule())
    return JSONResponse(content={"ok": True, "data": {"price": price}})


@app.post("/v1/bookings/conflicts")
async def booking_conflicts(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = SlotQueryArgs.model_validate(
            {
                "date": payload.get("date"),
                "time": payload.get("start_time") or payload.get("time"),
                "duration": payload.get("duration"),
                "court_id": payload.get("court_id", 1),
            }
        )
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        existing = fetch_bookings_for_window(db=db, court_id=args.court_id, day=args.date)
        conflicts = find_conflicting_bookings(args.date, args.time, args.duration, existing)
        return JSONResponse(
            content={
                "ok": True,
                "data": {"conflicts": [serialize_booking(b) for b in conflicts]},
            }
        )
    finally:
        db.close()


@app.post("/v1/cart/items")
async def cart_add_item(payload: dict[str, Any]) -> JSONResponse:
    try:
        args = parse_booking_form_args(payload)
        cart = Cart(items=parse_cart_items(payload.get("cart_items") or []))
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        court = find_court(db=db, court_id=args.court_id)
    finally:
        db.close()
    if court is None or not court.is_active:
        return _court_not_found()

    item = build_cart_item(args, court_name=court.name, rate_schedule=default_rate_schedule())
    cart = add_to_cart(cart, item)
    return JSONResponse(
        content={
            "ok": True,
            "data": {
                "item": item.model_dump(),
                "cart_items": [entry.model_dump() for entry in cart.items],
                "totals": cart_totals(cart),
            },
        }
    )


@app.post("/v1/cart/check-conflicts")
async def cart_check_conflicts(payload: dict[str, Any]) -> JSONResponse:
    try:
        items = parse_cart_items(payload.get("cart_items") or [])
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        result = check_cart_conflicts(db=db, items=items)
    finally:
        db.close()
    return JSONResponse(content=result, status_code=_result_status(result))


@app.post("/v1/cart/reserve")
async def cart_reserve(payload: dict[str, Any]) -> JSONResponse:
    try:
        items = parse_cart_items(payload.get("cart_items") or [])
    except ValidationError as exc:
        return _invalid_args(exc)

    db = SessionLocal()
    try:
        result = reserve_cart(db=db, items=items, rate_schedule=default_rate_schedule())
        return JSONResponse(content=result, status_code=_result_status(result))
    except Exception:
        db.rollback()
        logger.exception("Reservation failed for %s cart items", len(items))
        return _system_down("Temporary issue reserving bookings.")
    finally:
        db.close()


@app.patch("/v1/admin/bookings/{booking_id}/approve", dependencies=[Depends(require_admin_api_key)])
async def admin_approve_booking(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = approve_booking(db=db, booking_id=booking_id)
        if booking is None:
            return _booking_not_found()
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except Exception:
        db.rollback()
        return _system_down("Temporary issue approving booking.")
    finally:
        db.close()


@app.patch("/v1/admin/bookings/{booking_id}/reject", dependencies=[Depends(require_admin_api_key)])
async def admin_reject_booking(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        booking = reject_booking(db=db, booking_id=booking_id)
        if booking is None:
            return _booking_not_found()
        return JSONResponse(content={"ok": True, "data": {"booking": serialize_booking(booking)}})
    except Exception:
        db.rollback()
        return _system_down("Temporary issue rejecting booking.")
    finally:
        db.close()


@app.delete("/v1/admin/bookings/{booking_id}", dependencies=[Depends(require_admin_api_key)])
async def admin_delete_booking(booking_id: int) -> JSONResponse:
    db = SessionLocal()
    try:
        if not delete_booking(db=db, booking_id=booking_id):
            return _booking_not_found()
        return JSONResponse(content={"ok": True, "data": {"booking_id": booking_id}})
    except Exception:
        db.rollback()
        return _system_down("Temporary issue deleting booking.")
    finally:
        db.close()


def _result_status(result: dict[str, Any]) -> int:
    if result.get("ok"):
        return 200
    if result.get("error_code") == "SLOT_CONFLICT":
        return 409
    if result.get("error_code") == "COURT_NOT_FOUND":
        return 404
    return 400
