# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Mapping from domain exceptions to HTTP errors.

Every domain exception carries a ``code`` class attribute naming its error
kind. Responses use ``{"detail": {"code": ..., "message": ...}}``.
"""

from fastapi import HTTPException, status

STATUS_BY_CODE: dict[str, int] = {
    "InvalidCredentials": status.HTTP_401_UNAUTHORIZED,
    "InvalidOtp": status.HTTP_401_UNAUTHORIZED,
    "OtpExpired": status.HTTP_401_UNAUTHORIZED,
    "SessionExpired": status.HTTP_401_UNAUTHORIZED,
    "AccountLocked": status.HTTP_423_LOCKED,
    "ValidationFailed": status.HTTP_400_BAD_REQUEST,
    "InvalidScope": status.HTTP_400_BAD_REQUEST,
    "UnsupportedDonationType": status.HTTP_400_BAD_REQUEST,
    "InvalidResetToken": status.HTTP_400_BAD_REQUEST,
    "InvitationForbidden": status.HTTP_403_FORBIDDEN,
    "InvitationNotFound": status.HTTP_404_NOT_FOUND,
    "DonationNotFound": status.HTTP_404_NOT_FOUND,
    "AdminNotFound": status.HTTP_404_NOT_FOUND,
    "ProvinceNotFound": status.HTTP_404_NOT_FOUND,
    "InvitationAlreadyUsed": status.HTTP_409_CONFLICT,
    "InvalidTransition": status.HTTP_409_CONFLICT,
    "DuplicateInvitation": status.HTTP_409_CONFLICT,
    "AccountExists": status.HTTP_409_CONFLICT,
    "LastSuperAdmin": status.HTTP_409_CONFLICT,
    "InvitationExpired": status.HTTP_410_GONE,
}


def error_detail(code: str, message: str) -> dict[str, str]:
    return {"code": code, "message": message}


def http_error(error: Exception) -> HTTPException:
    """Build the HTTPException for a domain exception.

    Unknown codes map to 400.
    """
    code = getattr(error, "code", type(error).__name__)
    status_code = STATUS_BY_CODE.get(code, status.HTTP_400_BAD_REQUEST)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(
        status_code=status_code,
        detail=error_detail(code, str(error)),
        headers=headers,
    )
