"""
Backend Services
================

One service per entity family. Each service builds the request payload,
calls the transport, and turns the JSON response into model objects.

Services are blocking and run only inside background tasks. Transport and
parsing failures are wrapped into a per-family exception
(``AuthenticationError``, ``IssueError``, ``UserError``, ``CommentError``)
whose ``__cause__`` keeps the original error, so controllers can still tell a
communication failure from an application error when they need to.

The one exception is ``UserService.exists_user``: it lets transport errors
through untouched because the existence check classifies them itself.
"""

import json
import logging
from pathlib import Path
from typing import List, Tuple, Union

import requests

from .api_client import ApiClient, CommunicationError
from .config import (
    ENDPOINT_COMMENTS,
    ENDPOINT_COMMENTS_BY_ISSUE,
    ENDPOINT_IMAGE,
    ENDPOINT_IMAGE_UPLOAD,
    ENDPOINT_ISSUES,
    ENDPOINT_LOGIN,
    ENDPOINT_USER_BY_EMAIL,
    ENDPOINT_USERS,
)
from .errors import BugBoardError
from .models import Comment, Issue, User, UserType


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ServiceError(BugBoardError):
    """Base exception for failures inside a backend service call."""

    @property
    def is_communication_error(self) -> bool:
        return isinstance(self.__cause__, CommunicationError)


class AuthenticationError(ServiceError):
    """Raised when login fails for any reason."""
    pass


class IssueError(ServiceError):
    """Raised when an issue operation fails."""
    pass


class ImageUploadError(IssueError):
    """Raised when the image phase of an issue creation fails."""
    pass


class UserError(ServiceError):
    """Raised when a user operation fails."""
    pass


class CommentError(ServiceError):
    """Raised when a comment operation fails."""
    pass


def _parse_json(body: str):
    if body is None or not body.strip():
        return None
    return json.loads(body)


# ============================================================================
# SERVICES
# ============================================================================

class BaseService:
    """Base class holding the shared transport."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.logger = logging.getLogger(self.__class__.__module__)


class AuthService(BaseService):

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Authenticate against ``POST /auth/login``.

        Returns:
            ``(user, token)``. The session is not touched here.

        Raises:
            AuthenticationError: On an empty/unparseable response, a response
                without token or role, or any transport failure.
        """
        try:
            body = self.api.post(ENDPOINT_LOGIN, {"email": email, "password": password})
            data = _parse_json(body)
            if not isinstance(data, dict) or not data.get("token"):
                raise AuthenticationError("Login failed: empty or malformed response from server")

            role = data.get("roles", data.get("role", data.get("type")))
            if not role:
                raise AuthenticationError("Login failed: response carries no role")
            user = User(
                username=data.get("email") or email,
                password=password,
                role=UserType.from_role(role),
                id=data.get("id"),
            )
            return user, data["token"]
        except AuthenticationError:
            raise
        except CommunicationError as e:
            raise AuthenticationError("Communication error during login") from e
        except Exception as e:
            raise AuthenticationError(f"Login failed: {e}") from e


class IssueService(BaseService):

    def fetch_all(self) -> List[Issue]:
        try:
            data = _parse_json(self.api.get(ENDPOINT_ISSUES))
            return [Issue.from_json(item) for item in (data or [])]
        except CommunicationError as e:
            raise IssueError("Communication error during issue retrieval") from e
        except Exception as e:
            raise IssueError(f"Issue retrieval failed: {e}") from e

    def create(self, issue: Issue) -> Issue:
        """Create the issue without its image; returns the server copy."""
        try:
            data = _parse_json(self.api.post(ENDPOINT_ISSUES, issue.to_create_request()))
            if not isinstance(data, dict):
                raise IssueError("Issue creation failed: empty response from server")
            created = Issue.from_json(data)
            if created.reporter is None:
                created.reporter = issue.reporter
            return created
        except IssueError:
            raise
        except CommunicationError as e:
            raise IssueError("Communication error during issue creation") from e
        except Exception as e:
            raise IssueError(f"Issue creation failed: {e}") from e

    def upload_image(self, issue_id: int, local_path: Union[str, Path]) -> str:
        """Upload ``local_path`` for an existing issue; returns the server reference."""
        try:
            reference = self.api.post_multipart(
                ENDPOINT_IMAGE_UPLOAD.format(issue_id=issue_id), local_path
            )
            return reference.strip().strip('"')
        except CommunicationError as e:
            raise ImageUploadError(f"Communication error uploading image for issue {issue_id}") from e
        except Exception as e:
            raise ImageUploadError(f"Image upload failed for issue {issue_id}: {e}") from e

    def download_image(self, filename: str) -> bytes:
        """
        Download an issue image.

        Only the final path component is sent so local paths never leak to
        the server.
        """
        actual = Path(filename.replace("\\", "/")).name
        try:
            return self.api.get_stream(ENDPOINT_IMAGE.format(filename=actual))
        except CommunicationError as e:
            raise IssueError(f"Communication error downloading image {actual}") from e
        except Exception as e:
            raise IssueError(f"Image download failed for {actual}: {e}") from e


class UserService(BaseService):

    def fetch_all(self) -> List[User]:
        try:
            data = _parse_json(self.api.get(ENDPOINT_USERS))
            return [User.from_json(item) for item in (data or []) if item]
        except CommunicationError as e:
            raise UserError("Communication error during user retrieval") from e
        except Exception as e:
            raise UserError(f"User retrieval failed: {e}") from e

    def create(self, user: User) -> User:
        try:
            data = _parse_json(self.api.post(ENDPOINT_USERS, user.to_create_request()))
            if not isinstance(data, dict):
                raise UserError("User creation failed: empty response from server")
            return User.from_json(data)
        except UserError:
            raise
        except CommunicationError as e:
            raise UserError("Communication error during user creation") from e
        except Exception as e:
            raise UserError(f"User creation failed: {e}") from e

    def exists_user(self, email: str) -> bool:
        """
        Look up ``GET /users/email/{email}``.

        Transport exceptions propagate unchanged; a non-empty 2xx body means
        the user exists.
        """
        body = self.api.get(ENDPOINT_USER_BY_EMAIL.format(email=requests.utils.quote(email, safe="@")))
        return bool(body and body.strip())


class CommentService(BaseService):

    def fetch_for_issue(self, issue_id: int) -> List[Comment]:
        try:
            data = _parse_json(self.api.get(ENDPOINT_COMMENTS_BY_ISSUE.format(issue_id=issue_id)))
            return [Comment.from_json(item) for item in (data or [])]
        except CommunicationError as e:
            raise CommentError("Communication error during comment retrieval") from e
        except Exception as e:
            raise CommentError(f"Comment retrieval failed: {e}") from e

    def create(self, comment: Comment) -> Comment:
        try:
            data = _parse_json(self.api.post(ENDPOINT_COMMENTS, comment.to_json()))
            if not isinstance(data, dict):
                raise CommentError("Comment creation failed: empty response from server")
            created = Comment.from_json(data)
            if created.author is None:
                created.author = comment.author
            if created.issue_id is None:
                created.issue_id = comment.issue_id
            return created
        except CommentError:
            raise
        except CommunicationError as e:
            raise CommentError("Communication error during comment creation") from e
        except Exception as e:
            raise CommentError(f"Comment creation failed: {e}") from e


class Services:
    """Bundle of all services sharing one transport."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.auth = AuthService(api)
        self.issues = IssueService(api)
        self.users = UserService(api)
        self.comments = CommentService(api)
