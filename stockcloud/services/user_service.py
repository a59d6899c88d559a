"""
User Service - accounts, roles and authentication
"""

import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, List, Optional

from flask import current_app

from stockcloud.database import unit_of_work
from stockcloud.errors import AuthenticationFailed, UserNotFound, ValidationFailed
from stockcloud.models import User, UserRole
from stockcloud.repositories import UserRepository
from stockcloud.services.cache_policy import UseCase, invalidate_after
from stockcloud.utils.cache_utils import get_cache
from stockcloud.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_RESET_TTL_HOURS = 24


def reset_token_ttl():
    try:
        hours = current_app.config.get('PASSWORD_RESET_TTL_HOURS', DEFAULT_RESET_TTL_HOURS)
    except RuntimeError:
        hours = DEFAULT_RESET_TTL_HOURS
    return timedelta(hours=hours)


class UserService:
    """Business logic for users"""

    def __init__(self, user_repo=None, cache=None):
        self.user_repo = user_repo or UserRepository()
        self.cache = cache or get_cache()

    def _get(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if not user:
            raise UserNotFound(user_id)
        return user

    def authenticate(self, username: str, password: str) -> Dict[str, Any]:
        """Check credentials of an active user"""
        user = self.user_repo.get_by_username(username)
        if not user or not user.active or not user.check_password(password):
            logger.warning(f"Failed login attempt for {username}")
            raise AuthenticationFailed("Invalid username or password")

        logger.info(f"User {user.id} logged in")
        return user.to_dict()

    def get_user(self, user_id: int) -> Dict[str, Any]:
        return self._get(user_id).to_dict()

    def list_users(self) -> List[Dict[str, Any]]:
        return [user.to_dict() for user in self.user_repo.list_all()]

    def create_user(self, username: str, email: str, password: str,
                    role: UserRole = UserRole.EMPLOYEE) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            user = User(username=username, email=email, role=role, active=True)
            user.set_password(password)
            self.user_repo.add(user)
            invalidate_after(UseCase.USER_CHANGED)

        logger.info(f"Created user {user.id} ({user.role.value})")
        return user.to_dict()

    def change_role(self, user_id: int, role: UserRole) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            user = self._get(user_id)
            user.role = role
            self.user_repo.flush(user)
            invalidate_after(UseCase.USER_CHANGED)

        logger.info(f"User {user_id} is now {role.value}")
        return user.to_dict()

    def set_active(self, user_id: int, active: bool) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            user = self._get(user_id)
            user.active = active
            self.user_repo.flush(user)
            invalidate_after(UseCase.USER_CHANGED)

        logger.info(f"User {user_id} {'activated' if active else 'deactivated'}")
        return user.to_dict()

    # Password reset

    def _issue_reset_token(self, user: User) -> Dict[str, Any]:
        user.reset_token = secrets.token_hex(32)
        user.reset_token_expires = utcnow() + reset_token_ttl()
        self.user_repo.flush(user)
        return {
            'user_id': user.id,
            'token': user.reset_token,
            'expires_at': user.reset_token_expires.isoformat(),
        }

    def request_password_reset(self, email: str) -> Optional[Dict[str, Any]]:
        """
        Issue a reset token for the active user with this e-mail.

        Returns None for unknown or inactive accounts; callers answer the
        same way in both cases. Delivering the token is left to the caller.
        """
        with unit_of_work(self.cache):
            user = self.user_repo.get_by_email(email)
            if not user or not user.active:
                logger.info("Password reset requested for an unknown or inactive e-mail")
                return None
            issued = self._issue_reset_token(user)

        logger.info(f"Issued password reset token for user {user.id}")
        return issued

    def issue_reset_token(self, user_id: int) -> Dict[str, Any]:
        """Admin-issued reset token, handed over to the user directly"""
        with unit_of_work(self.cache):
            issued = self._issue_reset_token(self._get(user_id))

        logger.info(f"Issued password reset token for user {user_id}")
        return issued

    def _user_for_token(self, token: str) -> User:
        user = self.user_repo.get_by_reset_token(token) if token else None
        if not user or not user.reset_token_valid(utcnow()):
            raise ValidationFailed("Invalid or expired reset token")
        return user

    def verify_reset_token(self, token: str) -> Dict[str, Any]:
        return self._user_for_token(token).to_dict()

    def reset_password(self, token: str, password: str) -> Dict[str, Any]:
        """Set a new password and burn the token"""
        with unit_of_work(self.cache):
            user = self._user_for_token(token)
            user.set_password(password)
            user.reset_token = None
            user.reset_token_expires = None
            self.user_repo.flush(user)

        logger.info(f"Password reset for user {user.id}")
        return user.to_dict()
