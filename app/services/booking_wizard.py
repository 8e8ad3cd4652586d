"""
Server-side checks for the three-step booking wizard.

    1. date & time   -> booking_date, start_time, end_time
    2. details       -> notes (custom work), deposit_amount, total_price
    3. payment       -> payment_method or payment_intent_id

A step may only be left forward when it and every earlier step pass.
"""

import datetime

from app.utils.validators import parse_date, parse_money, parse_time

STEP_DATE_TIME = 1
STEP_DETAILS = 2
STEP_PAYMENT = 3
LAST_STEP = STEP_PAYMENT


def _check_date_time(state, today, errors):
    try:
        booking_date = parse_date(state.get("booking_date"))
    except (ValueError, TypeError):
        errors["booking_date"] = "Please select a date"
        booking_date = None

    if booking_date and booking_date < today:
        errors["booking_date"] = "The selected date is in the past"

    try:
        start_time = parse_time(state.get("start_time"))
        end_time = parse_time(state.get("end_time"))
    except (ValueError, TypeError):
        errors["time_slot"] = "Please select a time slot"
        return

    if start_time >= end_time:
        errors["time_slot"] = "The time slot must end after it starts"


def _check_details(state, errors):
    is_custom = not state.get("design_id")
    notes = (state.get("notes") or "").strip()
    if is_custom and not notes:
        errors["notes"] = "Please provide details about your design"

    try:
        total = parse_money(state.get("total_price"))
    except ValueError:
        errors["total_price"] = "Invalid total amount"
        total = None
    try:
        deposit = parse_money(state.get("deposit_amount"))
    except ValueError:
        errors["deposit_amount"] = "Invalid deposit amount"
        return

    if state.get("design_id") and deposit is None:
        # design prices are filled in by the server
        return
    if deposit is None or deposit <= 0:
        errors["deposit_amount"] = "Invalid deposit amount"
        return
    if total is not None and total < deposit:
        errors["total_price"] = "The estimated total cannot be less than the deposit"


def _check_payment(state, errors):
    if not (state.get("payment_method") or state.get("payment_intent_id")):
        errors["payment"] = "Please provide a payment method for the deposit"


def validate_wizard_step(step, state, today=None):
    """Errors (field -> message) for step and all steps before it."""
    today = today or datetime.date.today()
    if step not in (STEP_DATE_TIME, STEP_DETAILS, STEP_PAYMENT):
        return {"step": f"Unknown step {step!r}"}

    errors = {}
    _check_date_time(state, today, errors)
    if step >= STEP_DETAILS:
        _check_details(state, errors)
    if step >= STEP_PAYMENT:
        _check_payment(state, errors)
    return errors


def next_step(step, errors):
    if errors:
        return step
    return min(step + 1, LAST_STEP)
