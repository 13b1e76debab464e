"""
Client Controllers
==================

Controllers invoked by the UI. Each one validates its inputs synchronously,
delegates the network work to a background task and applies the outcome to
the EntityStore on the UI context.

- IssueController: fetch-all / create issues, two-phase image upload, filters
- UserController: fetch-all / create users (admins only), existence check
- CommentController: lazy comment loading and comment creation per issue
- AuthController: login / logout, triggers the issue refresh after login
"""

import logging
from concurrent.futures import Future
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .errors import NotAuthorizedError, NotLoggedInError, ValidationError
from .existence import ExistenceCheck
from .models import Comment, Issue, IssueState, IssueType, Priority, User, UserType
from .services import AuthenticationError, ImageUploadError, Services, UserError
from .session import Session
from .store import EntityStore
from .sync import FailureCallback, SuccessCallback, SyncController
from ..utils.background_worker import TaskRunner


# ============================================================================
# ISSUES
# ============================================================================

class IssueController(SyncController):
    family = "issue"

    def refresh(self, on_success: SuccessCallback = None, on_failure: FailureCallback = None) -> Optional[Future]:
        """
        Replace the issue collection with the server's list.

        Never raises. Failures (including a logged-out session) are reported
        through the log and ``on_failure``.
        """
        if not self.session.is_logged_in():
            self._not_logged_in("refresh issues", on_failure)
            return None

        generation = self._next_generation("issues")

        def _apply(issues: List[Issue]) -> List[Issue]:
            if not self._is_superseded("issues", generation):
                self.store.issues.replace_all(issues)
                self.logger.info(f"Issues refreshed from backend ({len(issues)} items)")
            return self.store.issues.snapshot()

        return self._submit(
            self.services.issues.fetch_all, _apply, "Issue refresh",
            on_success=on_success, on_failure=on_failure
        )

    def create_issue(
        self,
        title: str,
        description: str,
        issue_type: IssueType,
        priority: Priority,
        state: IssueState,
        image_path: Optional[str] = None,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None,
        on_image_failure: Optional[Callable[[Issue, BaseException], None]] = None
    ) -> Future:
        """
        Create an issue, then upload its image if a local file was given.

        Raises:
            NotLoggedInError: No authenticated session.
            ValidationError: Empty title/description or a missing enum.
        """
        self._require_login("create issues")
        title = self._require_text(title, "Issue title")
        description = self._require_text(description, "Issue description")
        if issue_type is None or priority is None or state is None:
            raise ValidationError("Issue type, state and priority cannot be null")

        local_image = image_path.strip() if image_path and image_path.strip() else None
        provisional = Issue(
            title=title,
            description=description,
            type=issue_type,
            priority=priority,
            state=state,
            reporter=self.session.user,
            image_path=local_image,
        )

        def _create() -> Tuple[Issue, Optional[BaseException]]:
            created = self.services.issues.create(provisional)
            if local_image is None:
                return created, None
            if not Path(local_image).is_file():
                self.logger.warning(f"Image {local_image} not found, issue {created.id} created without image")
                return created, None
            try:
                created.image_path = self.services.issues.upload_image(created.id, local_image)
                return created, None
            except ImageUploadError as e:
                self.logger.error(f"Issue {created.id} created but image upload failed: {e}", exc_info=True)
                return created, e

        def _apply(outcome: Tuple[Issue, Optional[BaseException]]) -> Issue:
            created, image_error = outcome
            self.store.issues.append(created)
            self.logger.info(f"Issue {created.id} created on server and added to the store")
            if image_error is not None and on_image_failure is not None:
                on_image_failure(created, image_error)
            return created

        return self._submit(_create, _apply, "Issue creation", on_success=on_success, on_failure=on_failure)

    def download_image(
        self,
        filename: str,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None
    ) -> Future:
        """Fetch an issue image in the background; ``on_success`` receives the bytes."""
        self._require_login("download images")
        filename = self._require_text(filename, "Image name")
        return self._submit(
            lambda: self.services.issues.download_image(filename), lambda data: data,
            f"Image download '{filename}'", on_success=on_success, on_failure=on_failure
        )

    # Filtered views (None means "no filter")

    def issues_by_type(self, issue_type: Optional[IssueType]) -> List[Issue]:
        return self.store.issues_by_type(issue_type)

    def issues_by_priority(self, priority: Optional[Priority]) -> List[Issue]:
        return self.store.issues_by_priority(priority)

    def issues_by_state(self, state: Optional[IssueState]) -> List[Issue]:
        return self.store.issues_by_state(state)

    def search(self, text: str = "", issue_type: Optional[IssueType] = None,
               state: Optional[IssueState] = None) -> List[Issue]:
        return self.store.search_issues(text, issue_type, state)


# ============================================================================
# USERS
# ============================================================================

class UserController(SyncController):
    family = "user"

    def __init__(self, session: Session, store: EntityStore, services: Services, runner: TaskRunner,
                 existence: Optional[ExistenceCheck] = None):
        super().__init__(session, store, services, runner)
        self.existence = existence or ExistenceCheck(services.users)

    def refresh(self, on_success: SuccessCallback = None, on_failure: FailureCallback = None) -> Optional[Future]:
        if not self.session.is_logged_in():
            self._not_logged_in("refresh users", on_failure)
            return None

        generation = self._next_generation("users")

        def _apply(users: List[User]) -> List[User]:
            if not self._is_superseded("users", generation):
                self.store.users.replace_all(users)
                self.logger.info(f"Users refreshed from backend ({len(users)} items)")
            return self.store.users.snapshot()

        return self._submit(
            self.services.users.fetch_all, _apply, "User refresh",
            on_success=on_success, on_failure=on_failure
        )

    def create_user(
        self,
        email: str,
        password: str,
        role: UserType,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None,
        check_existence: bool = True
    ) -> Future:
        """
        Create an account. Only administrators may do this.

        The email is normalized (trimmed, lower-cased) and rejected when the
        store already holds it. With ``check_existence`` the background task
        first asks the backend, and refuses the creation when the user exists
        or when existence cannot be determined.

        Raises:
            NotLoggedInError / NotAuthorizedError: Not logged in / not admin.
            ValidationError: Empty email/password, missing role, or a
                username already present in the store.
        """
        if not self.session.is_logged_in():
            raise NotLoggedInError("User must be logged in to create users")
        if not self.session.is_admin():
            raise NotAuthorizedError("Only administrators can create users")
        email = self._require_text(email, "Email").lower()
        if not password:
            raise ValidationError("Password cannot be empty")
        if role is None:
            raise ValidationError("User type cannot be null")
        if self.store.find_user(email) is not None:
            raise ValidationError("User with this email already exists")

        provisional = User(username=email, password=password, role=role)

        def _create() -> User:
            if check_existence and self.existence.exists_user(email):
                raise UserError(f"User {email} already exists")
            return self.services.users.create(provisional)

        def _apply(created: User) -> User:
            self.store.users.append(created)
            self.logger.info(f"User {created.username} created on server and added to the store")
            return created

        return self._submit(_create, _apply, "User creation", on_success=on_success, on_failure=on_failure)

    def exists_user(self, email: str) -> bool:
        """Blocking existence lookup; see ``ExistenceCheck.exists_user``."""
        return self.existence.exists_user(email)


# ============================================================================
# COMMENTS
# ============================================================================

class CommentController(SyncController):
    family = "comment"

    def load_comments(
        self,
        issue: Issue,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None
    ) -> Optional[Future]:
        """Replace ``issue.comments`` with the server's list for that issue."""
        if issue is None or issue.id is None:
            raise ValidationError("Comments can only be loaded for a saved issue")
        if not self.session.is_logged_in():
            self._not_logged_in("load comments", on_failure)
            return None

        key = ("issue", issue.id)
        generation = self._next_generation(key)

        def _apply(comments: List[Comment]) -> List[Comment]:
            if not self._is_superseded(key, generation):
                issue.set_comments(comments)
                self.logger.debug(f"Loaded {len(comments)} comments for issue {issue.id}")
            return list(issue.comments)

        return self._submit(
            lambda: self.services.comments.fetch_for_issue(issue.id), _apply,
            f"Comment load for issue {issue.id}", on_success=on_success, on_failure=on_failure
        )

    def add_comment(
        self,
        issue: Issue,
        content: str,
        on_success: SuccessCallback = None,
        on_failure: FailureCallback = None
    ) -> Future:
        """
        Raises:
            NotLoggedInError: No authenticated session.
            ValidationError: Missing or unsaved issue, or empty content.
        """
        self._require_login("add comments")
        if issue is None or issue.id is None:
            raise ValidationError("Comments can only be added to a saved issue")
        content = self._require_text(content, "Comment content")

        provisional = Comment(content=content, issue_id=issue.id, author=self.session.user)

        def _apply(created: Comment) -> Comment:
            issue.add_comment(created)
            self.logger.info(f"Comment {created.id} added to issue {issue.id}")
            return created

        return self._submit(
            lambda: self.services.comments.create(provisional), _apply,
            "Comment creation", on_success=on_success, on_failure=on_failure
        )


# ============================================================================
# AUTHENTICATION
# ============================================================================

class AuthController:
    """
    Login / logout against the backend.

    ``login`` blocks the caller for the duration of the request; the desktop
    shell uses ``login_async`` instead so the Tk loop stays responsive. Both
    apply the session change on the calling/UI thread and then start the
    issue refresh without waiting for it.
    """

    def __init__(self, session: Session, services: Services, issues: IssueController, runner: TaskRunner):
        self.session = session
        self.services = services
        self.issues = issues
        self.runner = runner
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _credentials_valid(email: Optional[str], password: Optional[str]) -> bool:
        return bool(email and email.strip()) and bool(password)

    def _complete_login(self, user: User, token: str) -> None:
        self.session.login(user, token)
        self.logger.info(f"User logged in: {user.username} ({user.role.value})")
        self.issues.refresh()

    def login(self, email: str, password: str) -> bool:
        """
        Returns:
            bool: True when the backend accepted the credentials and the
            session now holds the user and token; False otherwise, with the
            session untouched.
        """
        if not self._credentials_valid(email, password):
            self.logger.warning("Login failed: invalid credentials provided")
            return False

        try:
            user, token = self.services.auth.login(email.strip(), password)
        except AuthenticationError as e:
            self.logger.error(f"Error during login: {e}", exc_info=True)
            return False
        except Exception as e:
            self.logger.error(f"Unexpected error during login: {e}", exc_info=True)
            return False

        try:
            self._complete_login(user, token)
        except Exception as e:
            self.logger.error(f"Could not start session after login: {e}", exc_info=True)
            self.session.logout()
            return False
        return True

    def login_async(self, email: str, password: str, on_done: Callable[[bool], None]) -> Optional[Future]:
        """Non-blocking login; ``on_done(success)`` runs on the UI context."""
        if not self._credentials_valid(email, password):
            self.logger.warning("Login failed: invalid credentials provided")
            self.runner.dispatcher.post(on_done, False)
            return None

        def _succeeded(result: Tuple[User, str]) -> None:
            try:
                self._complete_login(*result)
            except Exception as e:
                self.logger.error(f"Could not start session after login: {e}", exc_info=True)
                self.session.logout()
                on_done(False)
                return
            on_done(True)

        def _failed(error: BaseException) -> None:
            self.logger.warning(f"Login failed: {error}")
            on_done(False)

        return self.runner.run(
            lambda: self.services.auth.login(email.strip(), password),
            on_success=_succeeded, on_failure=_failed, description="Login"
        )

    def logout(self) -> None:
        """Clear the session; a second call is a no-op."""
        self.session.logout()
