"""
Session Management Module
==========================

This module defines the authenticated session of the BugBoard client.

The Session holds the bearer token and the authenticated user. It is created
once at application startup, handed to every controller and to the HTTP
transport through their constructors, and lives until the application closes.

Invariant: the token is set if and only if the user is set. Both fields are
written together under a lock, so the transport can read a consistent pair
from a background thread while the UI thread logs in or out.
"""

import logging
import threading
from typing import Optional, Tuple

from .models import User, UserType


class Session:
    """
    Single authoritative authentication state for one running client.

    Mutation only happens through ``login`` and ``logout``, both called from
    the UI context. Reads are safe from any thread.

    Attributes:
        token: Bearer token issued by the backend, or None
        user: The authenticated user, or None
    """

    def __init__(self):
        """Initialize an empty (logged out) session."""
        self.logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._user: Optional[User] = None
        self.logger.debug("Session initialized (logged out)")

    @property
    def token(self) -> Optional[str]:
        with self._lock:
            return self._token

    @property
    def user(self) -> Optional[User]:
        with self._lock:
            return self._user

    def snapshot(self) -> Tuple[Optional[str], Optional[User]]:
        """Return ``(token, user)`` read under a single lock acquisition."""
        with self._lock:
            return self._token, self._user

    def login(self, user: User, token: str) -> None:
        """
        Replace the session identity.

        Args:
            user: The authenticated user
            token: Bearer token issued for that user

        Raises:
            ValueError: If either value is missing, which would break the
                token/user invariant.
        """
        if user is None or not token:
            raise ValueError("login requires both a user and a non-empty token")
        with self._lock:
            self._user = user
            self._token = token
        self.logger.info(f"Session started for {user.username} ({user.role.value})")

    def logout(self) -> None:
        """Clear the session. Calling it while logged out is a no-op."""
        with self._lock:
            previous = self._user
            self._user = None
            self._token = None
        if previous is not None:
            self.logger.info(f"Session ended for {previous.username}")

    def is_logged_in(self) -> bool:
        with self._lock:
            return self._token is not None

    def is_admin(self) -> bool:
        with self._lock:
            return self._token is not None and self._user.role is UserType.ADMIN
