# services/ownership.py
"""Helpers shared by the ownership-scoped operations."""

from database.models import User
from database.stores import UserStore
from errors import InvalidRequestError, ResourceNotFoundError, UnauthorizedError


def resolve_user(users: UserStore, username: str) -> User:
    user = users.get_by_username(username)
    if user is None:
        raise ResourceNotFoundError.for_field("User", "username", username)
    return user


def check_page(page: int, size: int) -> None:
    if page < 0 or size <= 0:
        raise InvalidRequestError("Page must be >= 0 and size must be > 0")


def require_owner(entity, user: User, action: str) -> None:
    if entity.owner_id != user.id:
        raise UnauthorizedError(f"You are not authorized to {action} this invoice")
