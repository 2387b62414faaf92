# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Invitation-based account provisioning.

An invitation pre-authorizes one email for one role and geographic scope.
Its token is single-use and its status only moves forward:

    PENDING -> ACCEPTED | EXPIRED | REVOKED

Who may invite whom:

    super_admin     -> province_admin (province scope), donor
    province_admin  -> volunteer, both (city scope in own province), donor

Nobody can invite a super_admin. Tokens carry 256 random bits; only their
SHA-256 hash is stored, so resending an invitation issues a new token.

Example:
    >>> manager = InvitationManager(db, hasher, settings.invitation)
    >>> issued = await manager.create(
    ...     "ana@example.org", UserRole.VOLUNTEER, InvitationScope(city_id=3), inviter
    ... )
    >>> issued.invitation.status
    <InvitationStatus.PENDING: 'pending'>
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from enum import Enum
from typing import NamedTuple, assert_never

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from floodaid.core.config.settings import InvitationSettings
from floodaid.core.enums import InvitationStatus, MemberStatus, UserRole
from floodaid.domains.auth.password import PasswordHasher, password_policy_violations
from floodaid.infrastructure.database.models import AdminUser, City, Invitation, Member, Province
from floodaid.utils.datetime import Clock, utc_now

logger = logging.getLogger(__name__)

INVITATION_TOKEN_BYTES = 32


class InvitationError(Exception):
    """Base exception for invitation errors."""

    code = "InvitationError"


class InvalidScopeError(InvitationError):
    """Raised when the scope does not fit the invited role."""

    code = "InvalidScope"


class InvitationForbiddenError(InvitationError):
    """Raised when the inviter may not invite this role or scope."""

    code = "InvitationForbidden"


class DuplicateInvitationError(InvitationError):
    """Raised when a pending invitation already exists for the email."""

    code = "DuplicateInvitation"


class AccountExistsError(InvitationError):
    """Raised when the email already belongs to an account."""

    code = "AccountExists"


class InvitationNotFoundError(InvitationError):
    """Raised when no invitation matches the token or id."""

    code = "InvitationNotFound"


class InvitationExpiredError(InvitationError):
    """Raised when an invitation is past its expiry."""

    code = "InvitationExpired"


class InvitationAlreadyUsedError(InvitationError):
    """Raised when an invitation was already accepted or revoked."""

    code = "InvitationAlreadyUsed"


class InvalidTransitionError(InvitationError):
    """Raised when revoking or resending a non-pending invitation."""

    code = "InvalidTransition"


class RegistrationValidationError(InvitationError):
    """Raised when registration details are invalid."""

    code = "ValidationFailed"


class ScopeLevel(str, Enum):
    """Geographic scope an invited role is bound to."""

    NONE = "none"
    PROVINCE = "province"
    CITY = "city"


class InvitationScope(NamedTuple):
    """Requested province/city scope."""

    province_id: int | None = None
    city_id: int | None = None


class RegistrationDetails(NamedTuple):
    """What the invitee supplies when accepting."""

    name: str
    password: str
    phone: str | None = None


class IssuedInvitation(NamedTuple):
    """A stored invitation and its plaintext token (only available now)."""

    invitation: Invitation
    token: str


class AcceptedInvitation(NamedTuple):
    """An accepted invitation and the account it provisioned."""

    invitation: Invitation
    account: AdminUser | Member


def required_scope(role: UserRole) -> ScopeLevel:
    """Scope level an invitation for ``role`` must carry.

    Raises:
        InvitationForbiddenError: For roles that cannot be invited.
    """
    match role:
        case UserRole.VOLUNTEER | UserRole.BOTH:
            return ScopeLevel.CITY
        case UserRole.PROVINCE_ADMIN:
            return ScopeLevel.PROVINCE
        case UserRole.DONOR:
            return ScopeLevel.NONE
        case UserRole.SUPER_ADMIN:
            raise InvitationForbiddenError("Super admin accounts cannot be created by invitation")
        case _:
            assert_never(role)


def invitable_roles(inviter_role: UserRole) -> frozenset[UserRole]:
    """Roles an admin with ``inviter_role`` may invite."""
    match inviter_role:
        case UserRole.SUPER_ADMIN:
            return frozenset({UserRole.PROVINCE_ADMIN, UserRole.DONOR})
        case UserRole.PROVINCE_ADMIN:
            return frozenset({UserRole.VOLUNTEER, UserRole.BOTH, UserRole.DONOR})
        case UserRole.VOLUNTEER | UserRole.DONOR | UserRole.BOTH:
            return frozenset()
        case _:
            assert_never(inviter_role)


def hash_invitation_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class InvitationManager:
    """Creates, accepts, resends and revokes invitations.

    Args:
        db: Database session.
        password_hasher: Hasher for the invitee's password.
        settings: Invitation lifetime configuration.
        clock: Source of the current time.
    """

    def __init__(
        self,
        db: AsyncSession,
        password_hasher: PasswordHasher,
        settings: InvitationSettings,
        clock: Clock = utc_now,
    ) -> None:
        self._db = db
        self._hasher = password_hasher
        self._settings = settings
        self._clock = clock

    @property
    def lifetime(self) -> timedelta:
        return timedelta(days=self._settings.expire_days)

    def authorize(self, inviter: AdminUser, role: UserRole) -> None:
        """Check that ``inviter`` may invite ``role`` at all.

        Raises:
            InvitationForbiddenError: If the role is out of the inviter's reach.
        """
        if not inviter.is_active or role not in invitable_roles(inviter.role):
            raise InvitationForbiddenError(
                f"{inviter.role.value} cannot invite {role.value} accounts"
            )

    async def create(
        self,
        email: str,
        role: UserRole,
        scope: InvitationScope,
        created_by: AdminUser,
    ) -> IssuedInvitation:
        """Create a pending invitation.

        Args:
            email: Invitee email.
            role: Role the account will get.
            scope: Province/city scope; which part is required depends on role.
            created_by: The inviting admin.

        Returns:
            IssuedInvitation with the plaintext token for the email link.

        Raises:
            InvalidScopeError: If the scope is missing or unknown for the role.
            InvitationForbiddenError: If the inviter may not invite this.
            DuplicateInvitationError: If a pending invitation exists.
            AccountExistsError: If the email is already registered.
        """
        email = email.strip().lower()
        level = required_scope(role)
        if level is ScopeLevel.CITY and scope.city_id is None:
            raise InvalidScopeError(f"{role.value} invitations require a city")
        if level is ScopeLevel.PROVINCE and scope.province_id is None:
            raise InvalidScopeError(f"{role.value} invitations require a province")

        self.authorize(created_by, role)
        resolved = await self._resolve_scope(level, scope)

        if created_by.role == UserRole.PROVINCE_ADMIN and resolved.province_id is not None:
            if resolved.province_id != created_by.province_id:
                raise InvitationForbiddenError("Cannot invite outside your province")

        if await self._email_registered(email):
            raise AccountExistsError("An account with this email already exists")
        if await self._pending_for_email(email) is not None:
            raise DuplicateInvitationError("A pending invitation already exists for this email")

        token = secrets.token_urlsafe(INVITATION_TOKEN_BYTES)
        now = self._clock()
        invitation = Invitation(
            email=email,
            token_hash=hash_invitation_token(token),
            role=role,
            province_id=resolved.province_id,
            city_id=resolved.city_id,
            status=InvitationStatus.PENDING,
            created_by=created_by.id,
            created_at=now,
            expires_at=now + self.lifetime,
        )
        self._db.add(invitation)
        await self._db.commit()

        logger.info("Invitation %s created by admin %s for role %s", invitation.id, created_by.id, role.value)
        return IssuedInvitation(invitation, token)

    async def get_by_token(self, token: str) -> Invitation:
        """Return a pending, unexpired invitation for preview.

        Raises:
            InvitationNotFoundError, InvitationAlreadyUsedError,
            InvitationExpiredError: As for accept().
        """
        return await self._load_pending(token)

    async def accept(self, token: str, details: RegistrationDetails) -> AcceptedInvitation:
        """Accept an invitation and provision the account.

        Args:
            token: Token from the invitation link.
            details: Name, password and optional phone of the invitee.

        Returns:
            AcceptedInvitation with the created AdminUser or Member.

        Raises:
            InvitationNotFoundError: If the token is unknown.
            InvitationAlreadyUsedError: If accepted or revoked before.
            InvitationExpiredError: If past expiry; the status becomes EXPIRED.
            RegistrationValidationError: If name or password are invalid.
            AccountExistsError: If the email got registered meanwhile.
        """
        invitation = await self._load_pending(token)

        name = details.name.strip()
        if not name:
            raise RegistrationValidationError("Name is required")
        problems = password_policy_violations(details.password, require_complexity=True)
        if problems:
            raise RegistrationValidationError("Password " + "; ".join(problems))
        if await self._email_registered(invitation.email):
            raise AccountExistsError("An account with this email already exists")

        now = self._clock()
        claim = (
            update(Invitation)
            .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING)
            .values(status=InvitationStatus.ACCEPTED, accepted_at=now)
            .execution_options(synchronize_session=False)
        )
        if (await self._db.execute(claim)).rowcount != 1:
            await self._db.rollback()
            raise InvitationAlreadyUsedError("Invitation has already been used")

        account = self._provision(invitation, name, details)
        self._db.add(account)
        try:
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            raise AccountExistsError("An account with this email already exists") from e

        await self._db.refresh(invitation)
        logger.info("Invitation %s accepted as %s", invitation.id, invitation.role.value)
        return AcceptedInvitation(invitation, account)

    async def revoke(self, invitation_id: int, actor: AdminUser | None = None) -> Invitation:
        """Revoke a pending invitation.

        Raises:
            InvitationNotFoundError: If the id is unknown.
            InvitationForbiddenError: If ``actor`` is outside its scope.
            InvalidTransitionError: If the invitation is not pending.
        """
        invitation = await self._get(invitation_id, actor)
        current = invitation.status
        now = self._clock()
        stmt = (
            update(Invitation)
            .where(Invitation.id == invitation.id, Invitation.status == InvitationStatus.PENDING)
            .values(status=InvitationStatus.REVOKED, revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        if (await self._db.execute(stmt)).rowcount != 1:
            await self._db.rollback()
            raise InvalidTransitionError(f"Cannot revoke a {current.value} invitation")

        await self._db.commit()
        await self._db.refresh(invitation)
        logger.info("Invitation %s revoked", invitation.id)
        return invitation

    async def resend(self, invitation_id: int, actor: AdminUser | None = None) -> IssuedInvitation:
        """Issue a fresh token and expiry for a pending invitation.

        The previous link stops working.

        Raises:
            InvitationNotFoundError: If the id is unknown.
            InvitationForbiddenError: If ``actor`` is outside its scope.
            InvalidTransitionError: If the invitation is not pending.
        """
        invitation = await self._get(invitation_id, actor)
        if invitation.status is not InvitationStatus.PENDING:
            raise InvalidTransitionError(f"Cannot resend a {invitation.status.value} invitation")

        token = secrets.token_urlsafe(INVITATION_TOKEN_BYTES)
        invitation.token_hash = hash_invitation_token(token)
        invitation.expires_at = self._clock() + self.lifetime
        await self._db.commit()

        logger.info("Invitation %s resent", invitation.id)
        return IssuedInvitation(invitation, token)

    async def list(
        self, viewer: AdminUser, status: InvitationStatus | None = None
    ) -> list[Invitation]:
        """List invitations visible to ``viewer``, newest first.

        Province admins only see invitations in their province.
        """
        stmt = select(Invitation)
        if viewer.role == UserRole.PROVINCE_ADMIN:
            stmt = stmt.where(Invitation.province_id == viewer.province_id)
        if status is not None:
            stmt = stmt.where(Invitation.status == status)
        stmt = stmt.order_by(Invitation.created_at.desc(), Invitation.id.desc())
        result = await self._db.execute(stmt)
        return list(result.scalars().all())

    async def expire_stale(self) -> int:
        """Mark pending invitations past expiry as EXPIRED."""
        stmt = (
            update(Invitation)
            .where(
                Invitation.status == InvitationStatus.PENDING,
                Invitation.expires_at < self._clock(),
            )
            .values(status=InvitationStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        result = await self._db.execute(stmt)
        return result.rowcount

    async def _load_pending(self, token: str) -> Invitation:
        stmt = (
            select(Invitation)
            .where(Invitation.token_hash == hash_invitation_token(token))
            .execution_options(populate_existing=True)
        )
        invitation = (await self._db.execute(stmt)).scalar_one_or_none()
        if invitation is None:
            raise InvitationNotFoundError("Invitation not found")

        match invitation.status:
            case InvitationStatus.ACCEPTED | InvitationStatus.REVOKED:
                raise InvitationAlreadyUsedError("Invitation has already been used")
            case InvitationStatus.EXPIRED:
                raise InvitationExpiredError("Invitation has expired")
            case InvitationStatus.PENDING:
                pass
            case _:
                assert_never(invitation.status)

        if self._clock() > invitation.expires_at:
            invitation.status = InvitationStatus.EXPIRED
            await self._db.commit()
            logger.info("Invitation %s expired", invitation.id)
            raise InvitationExpiredError("Invitation has expired")
        return invitation

    async def _get(self, invitation_id: int, actor: AdminUser | None) -> Invitation:
        invitation = await self._db.get(Invitation, invitation_id, populate_existing=True)
        if invitation is None:
            raise InvitationNotFoundError(f"Invitation {invitation_id} not found")
        if (
            actor is not None
            and actor.role == UserRole.PROVINCE_ADMIN
            and invitation.province_id != actor.province_id
        ):
            raise InvitationForbiddenError("Invitation is outside your province")
        return invitation

    async def _resolve_scope(self, level: ScopeLevel, scope: InvitationScope) -> InvitationScope:
        match level:
            case ScopeLevel.NONE:
                return InvitationScope()
            case ScopeLevel.PROVINCE:
                if await self._db.get(Province, scope.province_id) is None:
                    raise InvalidScopeError(f"Province {scope.province_id} does not exist")
                return InvitationScope(province_id=scope.province_id)
            case ScopeLevel.CITY:
                city = await self._db.get(City, scope.city_id)
                if city is None:
                    raise InvalidScopeError(f"City {scope.city_id} does not exist")
                if scope.province_id is not None and scope.province_id != city.province_id:
                    raise InvalidScopeError("City is not in the given province")
                return InvitationScope(province_id=city.province_id, city_id=city.id)
            case _:
                assert_never(level)

    async def _email_registered(self, email: str) -> bool:
        for model in (AdminUser, Member):
            stmt = select(func.count()).select_from(model).where(func.lower(model.email) == email.lower())
            if (await self._db.execute(stmt)).scalar():
                return True
        return False

    async def _pending_for_email(self, email: str) -> Invitation | None:
        stmt = select(Invitation).where(
            Invitation.email == email,
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at >= self._clock(),
        )
        return (await self._db.execute(stmt)).scalars().first()

    def _provision(
        self, invitation: Invitation, name: str, details: RegistrationDetails
    ) -> AdminUser | Member:
        password_hash = self._hasher.hash(details.password)
        role = invitation.role
        match role:
            case UserRole.PROVINCE_ADMIN:
                return AdminUser(
                    name=name,
                    email=invitation.email,
                    username=invitation.email,
                    password_hash=password_hash,
                    role=role,
                    province_id=invitation.province_id,
                    is_active=True,
                )
            case UserRole.VOLUNTEER | UserRole.DONOR | UserRole.BOTH:
                return Member(
                    name=name,
                    email=invitation.email,
                    password_hash=password_hash,
                    phone=details.phone,
                    role=role,
                    status=MemberStatus.APPROVED,
                    province_id=invitation.province_id,
                    city_id=invitation.city_id,
                )
            case UserRole.SUPER_ADMIN:
                raise InvitationForbiddenError("Super admin accounts cannot be created by invitation")
            case _:
                assert_never(role)
