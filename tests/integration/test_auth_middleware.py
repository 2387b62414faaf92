# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for the authentication middleware and role dependencies.

Tests the middleware components in isolation from the database.
"""

from types import SimpleNamespace

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from floodaid.api.dependencies import RequireRole, require_auth
from floodaid.api.middleware.auth import AuthMiddleware, CurrentUser, get_current_user
from floodaid.core.enums import UserRole
from floodaid.domains.auth.tokens import TokenService

pytestmark = pytest.mark.integration


def make_admin(role: UserRole = UserRole.PROVINCE_ADMIN) -> SimpleNamespace:
    return SimpleNamespace(id=7, email="sindh@floodaid.org", role=role)


@pytest.fixture
def app(token_service: TokenService) -> FastAPI:
    """Create an app exposing the authenticated identity."""
    app = FastAPI()
    app.add_middleware(AuthMiddleware, token_service=token_service)

    @app.get("/whoami")
    async def whoami(request: Request) -> dict:
        user = get_current_user(request)
        if user is None:
            return {"user": None}
        return {"user": {"id": user.id, "email": user.email, "role": user.role.value}}

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {"user": get_current_user(request)}

    @app.get("/private")
    async def private(user: CurrentUser = Depends(require_auth)) -> dict:
        return {"id": user.id}

    @app.get("/super-only")
    async def super_only(user: CurrentUser = Depends(RequireRole(UserRole.SUPER_ADMIN))) -> dict:
        return {"id": user.id}

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create test client."""
    return TestClient(app)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestAuthMiddleware:
    """Tests for AuthMiddleware."""

    def test_valid_token_sets_user(self, client: TestClient, token_service: TokenService) -> None:
        """Test that a valid token populates request.state.user."""
        token = token_service.issue_access_token(make_admin())

        response = client.get("/whoami", headers=bearer(token))

        assert response.status_code == 200
        assert response.json()["user"] == {
            "id": 7,
            "email": "sindh@floodaid.org",
            "role": "province_admin",
        }

    def test_missing_token_leaves_user_empty(self, client: TestClient) -> None:
        """Test that requests without a token continue anonymously."""
        response = client.get("/whoami")

        assert response.json() == {"user": None}

    @pytest.mark.parametrize(
        "header",
        ["Bearer not-a-jwt", "Basic dXNlcjpwYXNz", "Bearer", "Bearer a.b.c extra"],
    )
    def test_unusable_header_leaves_user_empty(self, client: TestClient, header: str) -> None:
        """Test that malformed Authorization headers are ignored."""
        response = client.get("/whoami", headers={"Authorization": header})

        assert response.json() == {"user": None}

    def test_expired_token_leaves_user_empty(self, client: TestClient, token_service: TokenService, clock) -> None:
        """Test that an access token stops working after 30 minutes."""
        token = token_service.issue_access_token(make_admin())
        clock.advance(minutes=30, seconds=1)

        response = client.get("/whoami", headers=bearer(token))

        assert response.json() == {"user": None}

    def test_public_path_skips_token(self, client: TestClient, token_service: TokenService) -> None:
        """Test that public paths never decode tokens."""
        token = token_service.issue_access_token(make_admin())

        response = client.get("/health", headers=bearer(token))

        assert response.status_code == 200
        assert response.json() == {"user": None}


class TestRoleDependencies:
    """Tests for require_auth and RequireRole."""

    def test_require_auth_without_token(self, client: TestClient) -> None:
        """Test that protected routes answer 401 with a Bearer challenge."""
        response = client.get("/private")

        assert response.status_code == 401
        assert response.json()["detail"]["code"] == "NotAuthenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_require_auth_with_token(self, client: TestClient, token_service: TokenService) -> None:
        """Test that authenticated requests reach the endpoint."""
        token = token_service.issue_access_token(make_admin())

        response = client.get("/private", headers=bearer(token))

        assert response.json() == {"id": 7}

    def test_wrong_role_is_forbidden(self, client: TestClient, token_service: TokenService) -> None:
        """Test that a province admin cannot use super admin routes."""
        token = token_service.issue_access_token(make_admin())

        response = client.get("/super-only", headers=bearer(token))

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "Forbidden"

    def test_matching_role_is_allowed(self, client: TestClient, token_service: TokenService) -> None:
        """Test that a super admin passes the role check."""
        token = token_service.issue_access_token(make_admin(UserRole.SUPER_ADMIN))

        response = client.get("/super-only", headers=bearer(token))

        assert response.status_code == 200


class TestCurrentUser:
    """Tests for CurrentUser helpers."""

    def test_role_helpers(self, token_service: TokenService) -> None:
        """Test role predicates on the decoded identity."""
        claims = token_service.validate_access_token(token_service.issue_access_token(make_admin()))
        user = CurrentUser(claims)

        assert user.is_admin is True
        assert user.is_super_admin is False
        assert user.has_any_role(UserRole.SUPER_ADMIN, UserRole.PROVINCE_ADMIN)
        assert user.token_id == claims.jti
