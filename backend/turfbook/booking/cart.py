from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from turfbook import config
from turfbook.booking.pricing import RateSchedule, calculate_price
from turfbook.booking.time_utils import (
    compute_end_time,
    minutes_to_time,
    parse_date,
    time_to_minutes,
)


MIN_DURATION_HOURS = 0.5
MAX_DURATION_HOURS = 4
DEFAULT_COURT_NAME = "Court A"


def _check_date(value: str) -> str:
    return parse_date(value).isoformat()


def _check_time(value: str) -> str:
    return minutes_to_time(time_to_minutes(value))


def _check_duration_step(value: float) -> float:
    if (value * 2) != int(value * 2):
        raise ValueError("Duration must be in 30-minute increments")
    return value


class BookingFormArgs(BaseModel):
    customer_name: str = Field(min_length=1)
    sport: str = Field(min_length=1)
    people_count: int = Field(ge=2)
    date: str
    time: str
    duration: float = Field(ge=MIN_DURATION_HOURS, le=MAX_DURATION_HOURS)
    court_id: int = Field(default=1, gt=0)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _check_time(value)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: float) -> float:
        return _check_duration_step(value)


class SlotQueryArgs(BaseModel):
    date: str
    time: str
    duration: float = Field(ge=MIN_DURATION_HOURS, le=MAX_DURATION_HOURS)
    court_id: int = Field(default=1, gt=0)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("time")
    @classmethod
    def validate_time(cls, value: str) -> str:
        return _check_time(value)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: float) -> float:
        return _check_duration_step(value)


class CartItem(BaseModel):
    customer_name: str = Field(min_length=1)
    sport: str = Field(min_length=1)
    people_count: int = Field(ge=2)
    date: str
    start_time: str
    end_time: str
    duration: float = Field(ge=MIN_DURATION_HOURS, le=MAX_DURATION_HOURS)
    court_id: int = Field(gt=0)
    court_name: str
    price: int = Field(gt=0)

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        return _check_date(value)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, value: str) -> str:
        return _check_time(value)

    @field_validator("duration")
    @classmethod
    def validate_duration(cls, value: float) -> float:
        return _check_duration_step(value)

    @model_validator(mode="after")
    def validate_end_time(self) -> "CartItem":
        expected = compute_end_time(self.start_time, self.duration)
        if self.end_time != expected:
            raise ValueError(f"end_time must be {expected} for a {self.duration}h slot")
        return self


class Cart(BaseModel):
    items: list[CartItem] = Field(default_factory=list)


def parse_booking_form_args(raw_args: dict[str, Any]) -> BookingFormArgs:
    return BookingFormArgs.model_validate(raw_args)


def parse_cart_items(raw_items: list[Any]) -> list[CartItem]:
    return [CartItem.model_validate(item) for item in raw_items]


def build_cart_item(
    args: BookingFormArgs,
    court_name: str = DEFAULT_COURT_NAME,
    rate_schedule: RateSchedule | None = None,
) -> CartItem:
    return CartItem(
        customer_name=args.customer_name,
        sport=args.sport,
        people_count=args.people_count,
        date=args.date,
        start_time=args.time,
        end_time=compute_end_time(args.time, args.duration),
        duration=args.duration,
        court_id=args.court_id,
        court_name=court_name,
        price=calculate_price(args.date, args.time, args.duration, rate_schedule),
    )


def add_to_cart(cart: Cart, item: CartItem) -> Cart:
    return Cart(items=[*cart.items, item])


def remove_from_cart(cart: Cart, index: int) -> Cart:
    if index < 0 or index >= len(cart.items):
        raise ValueError(f"No cart item at position {index}")
    return Cart(items=[item for pos, item in enumerate(cart.items) if pos != index])


def cart_totals(cart: Cart, service_fee: int | None = None) -> dict[str, int]:
    fee = config.SERVICE_FEE if service_fee is None else service_fee
    subtotal = sum(item.price for item in cart.items)
    return {
        "subtotal": subtotal,
        "service_fee": fee,
        "total": subtotal + fee,
    }


def map_validation_error(error: ValidationError) -> dict[str, str]:
    return {
        "error_code": "INVALID_ARGS",
        "human_message": f"Invalid args: {error.errors()[0]['msg']}",
    }
