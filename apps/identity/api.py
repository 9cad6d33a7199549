"""
Identity API endpoints with JWT bearer authentication.

Provides registration, login, the current-user lookup and user
management. Clients send ``Authorization: Bearer <token>`` on every
request after login.
"""
import logging
from typing import List, Optional

from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.core.utils import parse_id
from .models import User
from .dtos import RegisterIn, LoginIn, UserUpdate, UserOut, AuthOut, MessageOut
from .services import (
    to_user_dto, get_user_dto, register_user, authenticate_user,
    list_users, update_user, delete_user,
)
from .permissions import Permissions, has_permission, can_manage_user
from .jwt_auth import create_access_token, get_bearer_token, get_user_id_from_token

logger = logging.getLogger(__name__)

auth_router = Router(tags=["Auth"])
users_router = Router(tags=["Users"])


# =============================================================================
# Helper Functions
# =============================================================================

def get_current_user(request: HttpRequest) -> Optional[User]:
    """
    Extract and validate user from the bearer token.
    
    Returns User object if valid token, None otherwise.
    """
    token = get_bearer_token(request)
    if not token:
        return None
    
    user_id = get_user_id_from_token(token)
    if not user_id:
        return None
    
    try:
        return User.objects.get(id=user_id, is_active=True)
    except User.DoesNotExist:
        return None


def require_auth(request: HttpRequest) -> User:
    """
    Require authentication. Raises 401 if not authenticated.
    """
    user = get_current_user(request)
    if not user:
        raise HttpError(401, "No valid token, authorization denied")
    return user


def _auth_response(user: User) -> dict:
    return {
        "token": create_access_token(user.id, user.role),
        "user": to_user_dto(user),
    }


# =============================================================================
# Auth Endpoints
# =============================================================================

@auth_router.post("/register", response=AuthOut, auth=None)
def register(request: HttpRequest, payload: RegisterIn):
    """Create an account and return a token for it."""
    user = register_user(payload)
    return _auth_response(user)


@auth_router.post("/login", response=AuthOut, auth=None)
def login(request: HttpRequest, payload: LoginIn):
    """Exchange email and password for a bearer token."""
    user = authenticate_user(payload.email, payload.password)
    if user is None:
        logger.info("Rejected login attempt")
        raise HttpError(401, "Invalid credentials")
    return _auth_response(user)


@auth_router.get("/user", response=UserOut, auth=None)
def current_user(request: HttpRequest):
    """Get the authenticated user's profile."""
    user = require_auth(request)
    return to_user_dto(user)


# =============================================================================
# User Management Endpoints
# =============================================================================

@users_router.get("", response=List[UserOut], auth=None)
def list_all_users(request: HttpRequest):
    """List users, e.g. to pick an assignee."""
    require_auth(request)
    return list_users()


@users_router.get("/{user_id}", response=UserOut, auth=None)
def get_user(request: HttpRequest, user_id: str):
    require_auth(request)
    target_id = parse_id(user_id)
    user = get_user_dto(target_id) if target_id else None
    if not user:
        raise HttpError(404, "User not found")
    return user


@users_router.put("/{user_id}", response=UserOut, auth=None)
def update_profile(request: HttpRequest, user_id: str, payload: UserUpdate):
    """
    Update a user's name, email and (admins only) role.
    
    Users may edit themselves; admins may edit anyone.
    """
    actor = require_auth(request)
    target_id = parse_id(user_id)
    if target_id is None:
        raise HttpError(404, "User not found")
    if not can_manage_user(actor, target_id):
        raise HttpError(403, "Access denied")

    try:
        updated = update_user(
            target_id,
            payload,
            allow_role_change=has_permission(actor, Permissions.IDENTITY_MANAGE_USER),
        )
    except PermissionError as e:
        raise HttpError(403, str(e))

    if not updated:
        raise HttpError(404, "User not found")
    return updated


@users_router.delete("/{user_id}", response=MessageOut, auth=None)
def remove_user(request: HttpRequest, user_id: str):
    """Delete a user. Users may delete themselves; admins may delete anyone."""
    actor = require_auth(request)
    target_id = parse_id(user_id)
    if target_id is None:
        raise HttpError(404, "User not found")
    if not can_manage_user(actor, target_id):
        raise HttpError(403, "Access denied")

    if not delete_user(target_id):
        raise HttpError(404, "User not found")
    return {"message": "User removed"}
