"""
User Existence Check
====================

Pre-flight check used before creating an account.

Policy when the answer is uncertain:

- 404                       -> the user does not exist (False)
- any other HTTP error      -> re-raised; an application error is not guessed away
- network failure / timeout -> the user is assumed to exist (True)
- anything else unexpected  -> assumed to exist (True)

Assuming "exists" under uncertainty makes the caller refuse to create a
possibly duplicate account. The decision for ambiguous failures lives in
``fail_safe_exists`` and can be replaced per ExistenceCheck instance.
"""

import logging
from typing import Callable

from .api_client import ApiError, NotFoundError
from .services import UserService

logger = logging.getLogger(__name__)

ExistencePolicy = Callable[[BaseException], bool]


def fail_safe_exists(error: BaseException) -> bool:
    """Answer for an existence lookup that failed without a definite status."""
    logger.error(
        f"User existence check failed ({type(error).__name__}: {error}); assuming the user exists",
        exc_info=error
    )
    return True


class ExistenceCheck:
    """
    Blocking existence lookup. Call it from a background task or from code
    that accepts the network wait.

    Attributes:
        users: The UserService performing the request
        policy: Decision for ambiguous failures (defaults to fail_safe_exists)
    """

    def __init__(self, users: UserService, policy: ExistencePolicy = fail_safe_exists):
        self.users = users
        self.policy = policy

    def exists_user(self, email: str) -> bool:
        """
        Raises:
            ApiError: For any non-404 HTTP error status.
        """
        try:
            return self.users.exists_user(email.strip().lower())
        except NotFoundError:
            logger.debug(f"User {email} not found")
            return False
        except ApiError:
            raise
        except Exception as e:
            return self.policy(e)
