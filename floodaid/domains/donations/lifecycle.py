# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Donation construction rules and status transitions.

build_donation() never raises for bad input. It returns a DonationResult
whose ``error`` names the failure kind and field, so validation is ordinary
control flow for the caller.

Fields are partitioned by type:

    cash            amount > 0; quantity, item name and condition are unset
    other_supplies  quantity > 0 and item name required; amount is 0,
                    condition defaults to "good"

Status walks PENDING -> APPROVED -> DISTRIBUTED or PENDING -> REJECTED.
"""

import uuid
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import NamedTuple, assert_never

from floodaid.core.enums import DonationStatus, DonationType
from floodaid.infrastructure.database.models import Donation

DEFAULT_ITEM_CONDITION = "good"
ANONYMOUS_DONOR = "Anonymous"

_TYPE_ALIASES = {
    "cash": DonationType.CASH,
    "othersupplies": DonationType.OTHER_SUPPLIES,
    "supplies": DonationType.OTHER_SUPPLIES,
}


class DonationError(Exception):
    """Base exception for donation errors."""

    code = "DonationError"


class InvalidTransitionError(DonationError):
    """Raised when a transition is invoked from the wrong status."""

    code = "InvalidTransition"


class DonationNotFoundError(DonationError):
    """Raised when no donation has the requested receipt id."""

    code = "DonationNotFound"


class DonationErrorKind(str, Enum):
    """Why a donation could not be constructed."""

    VALIDATION_FAILED = "ValidationFailed"
    UNSUPPORTED_TYPE = "UnsupportedDonationType"


class DonationFailure(NamedTuple):
    kind: DonationErrorKind
    message: str
    field: str | None = None


class DonationRequest(NamedTuple):
    """Raw donation input, as submitted by a donor."""

    donation_type: str
    email: str
    donor_account_number: str | None = None
    donor_name: str | None = None
    contact: str | None = None
    amount: Decimal | float | str | None = None
    is_recurring: bool = False
    quantity: int | float | str | None = None
    item_name: str | None = None
    item_condition: str | None = None
    description: str | None = None


class DonationResult(NamedTuple):
    """Either a new pending donation or the reason there is none."""

    donation: Donation | None
    error: DonationFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DonationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    DISTRIBUTE = "distribute"


# action -> (required source status, resulting status)
TRANSITIONS: dict[DonationAction, tuple[DonationStatus, DonationStatus]] = {
    DonationAction.APPROVE: (DonationStatus.PENDING, DonationStatus.APPROVED),
    DonationAction.REJECT: (DonationStatus.PENDING, DonationStatus.REJECTED),
    DonationAction.DISTRIBUTE: (DonationStatus.APPROVED, DonationStatus.DISTRIBUTED),
}


def parse_donation_type(value: str | DonationType) -> DonationType | None:
    """Map user input such as "Cash" or "OtherSupplies" to a DonationType."""
    if isinstance(value, DonationType):
        return value
    key = "".join(ch for ch in str(value).lower() if ch.isalnum())
    return _TYPE_ALIASES.get(key)


def new_receipt_id() -> str:
    return f"RCPT-{uuid.uuid4().hex[:12].upper()}"


def _fail(message: str, field: str | None = None) -> DonationResult:
    return DonationResult(None, DonationFailure(DonationErrorKind.VALIDATION_FAILED, message, field))


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_quantity(value: int | float | str | None) -> int | None:
    """Whole number of items, or None when the input is not one."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    if not number.is_finite() or number != number.to_integral_value():
        return None
    return int(number)


def build_donation(request: DonationRequest) -> DonationResult:
    """Validate input and build a pending, unsaved donation.

    Args:
        request: Raw donation input.

    Returns:
        DonationResult with either ``donation`` or ``error`` set.
    """
    donation_type = parse_donation_type(request.donation_type)
    if donation_type is None:
        return DonationResult(
            None,
            DonationFailure(
                DonationErrorKind.UNSUPPORTED_TYPE,
                f"Unsupported donation type: {request.donation_type}",
                "donation_type",
            ),
        )

    email = _clean(request.email)
    if email is None or "@" not in email:
        return _fail("A valid email is required", "email")
    account_number = _clean(request.donor_account_number)
    if account_number is None:
        return _fail("Account number is required", "donor_account_number")

    donation = Donation(
        receipt_id=new_receipt_id(),
        donation_type=donation_type,
        status=DonationStatus.PENDING,
        donor_name=_clean(request.donor_name) or ANONYMOUS_DONOR,
        email=email,
        contact=_clean(request.contact),
        donor_account_number=account_number,
        description=_clean(request.description),
    )

    match donation_type:
        case DonationType.CASH:
            try:
                amount = Decimal(str(request.amount)) if request.amount is not None else None
            except InvalidOperation:
                amount = None
            if amount is None or not amount.is_finite() or amount <= 0:
                return _fail("Cash donations require an amount greater than 0", "amount")
            donation.amount = amount.quantize(Decimal("0.01"))
            donation.is_recurring = bool(request.is_recurring)
            donation.quantity = None
            donation.item_name = None
            donation.item_condition = None
        case DonationType.OTHER_SUPPLIES:
            quantity = _parse_quantity(request.quantity)
            if quantity is None or quantity <= 0:
                return _fail("Supply donations require a quantity greater than 0", "quantity")
            item_name = _clean(request.item_name)
            if item_name is None:
                return _fail("Supply donations require an item name", "item_name")
            donation.amount = Decimal("0")
            donation.is_recurring = False
            donation.quantity = quantity
            donation.item_name = item_name
            donation.item_condition = _clean(request.item_condition) or DEFAULT_ITEM_CONDITION
        case _:
            assert_never(donation_type)

    return DonationResult(donation)


def transition(donation: Donation, action: DonationAction) -> DonationStatus:
    """Move a donation to the status ``action`` leads to.

    Raises:
        InvalidTransitionError: If the donation is not in the required status.
    """
    source, target = TRANSITIONS[action]
    if donation.status != source:
        raise InvalidTransitionError(
            f"Cannot {action.value} a donation that is {DonationStatus(donation.status).value}"
        )
    donation.status = target
    return target


def approve(donation: Donation) -> DonationStatus:
    return transition(donation, DonationAction.APPROVE)


def reject(donation: Donation) -> DonationStatus:
    return transition(donation, DonationAction.REJECT)


def distribute(donation: Donation) -> DonationStatus:
    return transition(donation, DonationAction.DISTRIBUTE)
