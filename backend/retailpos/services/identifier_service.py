# Overview: Service-layer operations for identifier; encapsulates business logic and database work.

"""
Identifier Service - human-typed codes printed on labels and receipts

FORMATS (stable; label printers and scanners depend on the prefixes):
- Employee barcode:     EMP-XXXXX           (5 chars, unambiguous alphabet)
- Store-credit barcode: SC-YYYYMMDD-XXXXXX  (6 chars, base-36, uppercase)
- Transaction number:   TXN-YYYYMMDD-NNNNNN (last 6 digits of epoch millis)

UNIQUENESS:
- Employee barcodes are retried against a per-company lookup up to
  BARCODE_MAX_ATTEMPTS times. If every attempt collides the last candidate is
  returned anyway and the (company_id, barcode) unique constraint rejects it
  at insert time.
- Store-credit barcodes are not retried; the global unique constraint on
  store_credits.barcode is the only guard.
- Transaction numbers are time-derived and not enforced unique.
"""

from __future__ import annotations

import logging
import random
import string
import time
from datetime import datetime, timezone
from typing import Callable

from flask import current_app

from ..extensions import db
from ..models import Employee
from ..validation import ValidationError


logger = logging.getLogger(__name__)

EMPLOYEE_BARCODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
EMPLOYEE_BARCODE_LENGTH = 5
EMPLOYEE_BARCODE_PREFIX = "EMP-"

STORE_CREDIT_ALPHABET = string.digits + string.ascii_uppercase
STORE_CREDIT_RANDOM_LENGTH = 6
STORE_CREDIT_PREFIX = "SC-"

TRANSACTION_PREFIX = "TXN-"

DEFAULT_MAX_ATTEMPTS = 10

KIND_EMPLOYEE = "employee"
KIND_STORE_CREDIT = "store_credit"
KIND_TRANSACTION = "transaction"

_system_random = random.SystemRandom()


def _date_part(now: datetime | None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y%m%d")


def generate_employee_barcode(rng: random.Random | None = None) -> str:
    """One random EMP- candidate (no uniqueness check)."""
    rng = rng or _system_random
    code = "".join(rng.choice(EMPLOYEE_BARCODE_ALPHABET) for _ in range(EMPLOYEE_BARCODE_LENGTH))
    return f"{EMPLOYEE_BARCODE_PREFIX}{code}"


def generate_store_credit_barcode(rng: random.Random | None = None, now: datetime | None = None) -> str:
    rng = rng or _system_random
    suffix = "".join(rng.choice(STORE_CREDIT_ALPHABET) for _ in range(STORE_CREDIT_RANDOM_LENGTH))
    return f"{STORE_CREDIT_PREFIX}{_date_part(now)}-{suffix}"


def generate_transaction_number(now: datetime | None = None) -> str:
    """
    TXN-YYYYMMDD-NNNNNN.

    Two transactions created in the same millisecond (modulo 10^6 ms) get
    the same number.
    """
    if now is None:
        millis = time.time_ns() // 1_000_000
        now = datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    else:
        aware = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
        millis = int(aware.timestamp() * 1000)
    return f"{TRANSACTION_PREFIX}{_date_part(now)}-{str(millis)[-6:]}"


def employee_barcode_exists(company_id: int, barcode: str) -> bool:
    return db.session.query(Employee.id).filter_by(
        company_id=company_id,
        barcode=barcode,
    ).first() is not None


def _max_attempts() -> int:
    try:
        return int(current_app.config.get("BARCODE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS))
    except RuntimeError:
        # Outside an app context
        return DEFAULT_MAX_ATTEMPTS


def generate_unique_employee_barcode(
    company_id: int,
    *,
    exists: Callable[[str], bool] | None = None,
    rng: random.Random | None = None,
    max_attempts: int | None = None,
) -> str:
    """
    Generate an employee barcode not yet used in this company.

    Best effort: after max_attempts collisions the last candidate is returned
    and the insert is left to fail on the unique constraint.
    """
    if exists is None:
        def exists(code: str) -> bool:
            return employee_barcode_exists(company_id, code)

    attempts = max_attempts if max_attempts is not None else _max_attempts()
    barcode = generate_employee_barcode(rng)
    for _ in range(attempts):
        if not exists(barcode):
            return barcode
        barcode = generate_employee_barcode(rng)

    logger.warning(
        "Employee barcode retry budget exhausted for company %s after %d attempts",
        company_id,
        attempts,
    )
    return barcode


def generate_unique_code(
    kind: str,
    scope_id: int | None = None,
    *,
    exists: Callable[[str], bool] | None = None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> str:
    """
    Generate a printable identifier of the given kind.

    kind: "employee" (scope_id = company id), "store_credit" or "transaction".
    """
    if kind == KIND_EMPLOYEE:
        if scope_id is None and exists is None:
            raise ValidationError("company scope required for employee barcodes")
        return generate_unique_employee_barcode(scope_id, exists=exists, rng=rng)
    if kind == KIND_STORE_CREDIT:
        return generate_store_credit_barcode(rng, now)
    if kind == KIND_TRANSACTION:
        return generate_transaction_number(now)
    raise ValidationError(f"Unknown identifier kind: {kind}")
