"""Services for Identity app."""
import logging
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError

from .models import User, UserRole
from .dtos import UserDTO, UserSummaryDTO, RegisterIn, UserUpdate

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        date_joined=user.date_joined,
    )


def to_user_summary(user: Optional[User]) -> Optional[UserSummaryDTO]:
    if user is None:
        return None
    return UserSummaryDTO(id=user.id, name=user.name, email=user.email)


def get_user_dto(user_id) -> UserDTO | None:
    try:
        return to_user_dto(User.objects.get(id=user_id))
    except User.DoesNotExist:
        return None


def _normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _max_length(field_name: str) -> int:
    return User._meta.get_field(field_name).max_length


def _validate_profile(name: str, email: str, role: Optional[str]) -> dict:
    """Collect field errors for name/email/role; empty dict means valid."""
    errors = {}
    name = (name or "").strip()
    if not name:
        errors['name'] = ["Name is required"]
    elif len(name) > _max_length('name'):
        errors['name'] = [f"Name must be at most {_max_length('name')} characters"]

    # The email is stored in username too, so the shorter column wins
    email_max = min(_max_length('email'), _max_length('username'))
    try:
        validate_email(email)
    except ValidationError:
        errors['email'] = ["Please include a valid email"]
    else:
        if len(email) > email_max:
            errors['email'] = [f"Email must be at most {email_max} characters"]
    if role is not None and role not in UserRole.values:
        errors['role'] = [f"Role must be one of: {', '.join(UserRole.values)}"]
    return errors


def register_user(payload: RegisterIn) -> User:
    """
    Create an account.

    Raises:
        ValidationError: missing/invalid fields or an email already in use.
    """
    email = _normalize_email(payload.email)
    errors = _validate_profile(payload.name, email, payload.role)
    if len(payload.password or "") < MIN_PASSWORD_LENGTH:
        errors['password'] = [
            f"Please enter a password with {MIN_PASSWORD_LENGTH} or more characters"
        ]
    if errors:
        raise ValidationError(errors)

    if User.objects.filter(email=email).exists():
        raise ValidationError({'email': ["User already exists"]})

    try:
        with transaction.atomic():
            user = User.objects.create_user(
                username=email,
                email=email,
                password=payload.password,
                name=payload.name.strip(),
                role=payload.role,
            )
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        raise ValidationError({'email': ["User already exists"]})

    logger.info(f"Registered user {user.id} ({user.role})")
    return user


def authenticate_user(email: str, password: str) -> Optional[User]:
    """Return the active user matching the credentials, or None."""
    try:
        user = User.objects.get(email=_normalize_email(email))
    except User.DoesNotExist:
        return None
    if not user.is_active or not user.check_password(password or ""):
        return None
    return user


def list_users() -> list[UserDTO]:
    return [to_user_dto(u) for u in User.objects.all()]


def update_user(user_id, payload: UserUpdate, allow_role_change: bool) -> UserDTO | None:
    """
    Replace a user's name and email, and their role when provided.

    Returns None when no such user exists.

    Raises:
        ValidationError: invalid fields, email taken by another user.
        PermissionError: role change requested without allow_role_change.
    """
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None

    email = _normalize_email(payload.email)
    errors = _validate_profile(payload.name, email, payload.role)
    if errors:
        raise ValidationError(errors)

    if email != user.email and User.objects.filter(email=email).exclude(id=user.id).exists():
        raise ValidationError({'email': ["Email is already taken"]})

    if payload.role and payload.role != user.role:
        if not allow_role_change:
            raise PermissionError("Only administrators can change roles")
        user.role = payload.role

    user.name = payload.name.strip()
    user.email = email
    user.username = email

    try:
        with transaction.atomic():
            user.save()
    except IntegrityError:
        raise ValidationError({'email': ["Email is already taken"]})

    return to_user_dto(user)


def delete_user(user_id) -> bool:
    """
    Delete a user.

    Tasks they created keep existing with no creator. Deletion is refused
    while the user is still the assignee of any task.

    Raises:
        ValidationError: the user still has assigned tasks.
    """
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return False

    try:
        with transaction.atomic():
            user.delete()
    except ProtectedError:
        raise ValidationError(
            "User is still assigned to tasks; reassign or delete them first"
        )

    logger.info(f"Deleted user {user_id}")
    return True
