import os
import tempfile
import threading
import unittest
from unittest.mock import MagicMock

from bugboard.core.api_client import CommunicationError, NotFoundError
from bugboard.core.controllers import CommentController, IssueController, UserController
from bugboard.core.errors import NotAuthorizedError, NotLoggedInError, ValidationError
from bugboard.core.models import Comment, Issue, IssueState, IssueType, Priority, User, UserType
from bugboard.core.services import CommentError, ImageUploadError, IssueError, UserError
from bugboard.core.session import Session
from bugboard.core.store import EntityStore
from bugboard.utils.background_worker import Dispatcher, TaskRunner


def make_issue(issue_id, title="Issue"):
    return Issue(title, "desc", IssueType.BUG, Priority.LOW, IssueState.TODO, id=issue_id)


class ControllerTestCase(unittest.TestCase):
    """Real dispatcher and runner; the backend services are mocks."""

    def setUp(self):
        self.session = Session()
        self.store = EntityStore()
        self.services = MagicMock()
        self.dispatcher = Dispatcher()
        self.runner = TaskRunner(self.dispatcher)
        self.addCleanup(self.runner.shutdown, True)

        self.user = User(username="dev@bugboard.io", role=UserType.USER, id=1)
        self.admin = User(username="root@bugboard.io", role=UserType.ADMIN, id=2)

    def complete(self, future):
        """Wait for the background part, then run the continuation on this thread."""
        self.assertIsNotNone(future)
        future.result(timeout=5)
        self.dispatcher.drain()


class TestIssueController(ControllerTestCase):
    def setUp(self):
        super().setUp()
        self.controller = IssueController(self.session, self.store, self.services, self.runner)
        self.session.login(self.user, "tok1")

    def test_refresh_replaces_issues(self):
        self.store.issues.replace_all([make_issue(99)])
        self.services.issues.fetch_all.return_value = [make_issue(1), make_issue(2)]
        results = []

        self.complete(self.controller.refresh(on_success=results.append))

        self.assertEqual([i.id for i in self.store.issues], [1, 2])
        self.assertEqual(len(results[0]), 2)

    def test_refresh_failure_leaves_store_untouched(self):
        self.store.issues.replace_all([make_issue(99)])
        self.services.issues.fetch_all.side_effect = IssueError("down")
        failures = []

        self.complete(self.controller.refresh(on_failure=failures.append))

        self.assertEqual([i.id for i in self.store.issues], [99])
        self.assertIsInstance(failures[0], IssueError)

    def test_refresh_when_logged_out(self):
        self.session.logout()
        failures = []

        self.assertIsNone(self.controller.refresh(on_failure=failures.append))
        self.dispatcher.drain()

        self.assertIsInstance(failures[0], NotLoggedInError)
        self.services.issues.fetch_all.assert_not_called()

    def test_stale_refresh_is_dropped(self):
        release = threading.Event()
        old = [make_issue(1, "old")]
        fresh = [make_issue(1, "fresh"), make_issue(2, "fresh")]

        self.services.issues.fetch_all = lambda: (release.wait(5), old)[1]
        slow = self.controller.refresh()
        self.services.issues.fetch_all = lambda: fresh
        fast = self.controller.refresh()

        self.complete(fast)
        release.set()
        self.complete(slow)

        self.assertEqual([i.title for i in self.store.issues], ["fresh", "fresh"])

    def test_sequential_refreshes_both_apply(self):
        self.services.issues.fetch_all.return_value = [make_issue(1)]
        self.complete(self.controller.refresh())
        self.services.issues.fetch_all.return_value = [make_issue(1), make_issue(2)]
        self.complete(self.controller.refresh())
        self.assertEqual(len(self.store.issues), 2)

    def test_create_issue_validates_before_network(self):
        with self.assertRaises(ValidationError):
            self.controller.create_issue("   ", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO)
        with self.assertRaises(ValidationError):
            self.controller.create_issue("Title", "", IssueType.BUG, Priority.LOW, IssueState.TODO)
        with self.assertRaises(ValidationError):
            self.controller.create_issue("Title", "desc", None, Priority.LOW, IssueState.TODO)
        self.services.issues.create.assert_not_called()

    def test_create_issue_requires_login(self):
        self.session.logout()
        with self.assertRaises(NotLoggedInError):
            self.controller.create_issue("Title", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO)

    def test_create_issue_appends_server_copy(self):
        self.services.issues.create.return_value = make_issue(10, "Title")
        created = []

        self.complete(self.controller.create_issue(
            " Title ", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO, on_success=created.append
        ))

        sent = self.services.issues.create.call_args[0][0]
        self.assertEqual(sent.title, "Title")
        self.assertEqual(sent.reporter, self.user)
        self.assertEqual([i.id for i in self.store.issues], [10])
        self.assertEqual(created[0].id, 10)
        self.services.issues.upload_image.assert_not_called()

    def test_create_issue_failure_does_not_touch_store(self):
        self.store.issues.replace_all([make_issue(1, "existing")])
        events = []
        self.store.issues.add_listener(events.append)
        self.services.issues.create.side_effect = IssueError("down")
        created, failures = [], []

        self.complete(self.controller.create_issue(
            "Title", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO,
            on_success=created.append, on_failure=failures.append
        ))

        self.assertEqual([(i.id, i.title) for i in self.store.issues], [(1, "existing")])
        self.assertEqual(events, [])
        self.assertEqual(created, [])
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], IssueError)

    def _temp_image(self):
        fd, path = tempfile.mkstemp(suffix=".png")
        os.write(fd, b"png")
        os.close(fd)
        self.addCleanup(os.remove, path)
        return path

    def test_create_issue_uploads_image(self):
        path = self._temp_image()
        self.services.issues.create.return_value = make_issue(10)
        self.services.issues.upload_image.return_value = "issue-10.png"

        self.complete(self.controller.create_issue(
            "Title", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO, image_path=path
        ))

        self.services.issues.upload_image.assert_called_once_with(10, path)
        self.assertEqual(self.store.issues[0].image_path, "issue-10.png")

    def test_image_upload_failure_keeps_issue(self):
        path = self._temp_image()
        self.services.issues.create.return_value = make_issue(10)
        self.services.issues.upload_image.side_effect = ImageUploadError("too large")
        created, image_failures, failures = [], [], []

        self.complete(self.controller.create_issue(
            "Title", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO, image_path=path,
            on_success=created.append, on_failure=failures.append,
            on_image_failure=lambda issue, e: image_failures.append((issue, e))
        ))

        self.assertEqual([i.id for i in self.store.issues], [10])
        self.assertEqual(created[0].id, 10)
        self.assertEqual(failures, [])
        self.assertEqual(image_failures[0][0].id, 10)
        self.assertIsInstance(image_failures[0][1], ImageUploadError)

    def test_missing_image_file_skips_upload(self):
        self.services.issues.create.return_value = make_issue(10)

        self.complete(self.controller.create_issue(
            "Title", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO, image_path="/nonexistent/shot.png"
        ))

        self.services.issues.upload_image.assert_not_called()
        self.assertEqual(len(self.store.issues), 1)

    def test_download_image(self):
        self.services.issues.download_image.return_value = b"bytes"
        received = []
        self.complete(self.controller.download_image("shot.png", on_success=received.append))
        self.assertEqual(received, [b"bytes"])


class TestUserController(ControllerTestCase):
    def setUp(self):
        super().setUp()
        self.controller = UserController(self.session, self.store, self.services, self.runner)
        self.services.users.exists_user.side_effect = NotFoundError(404, "missing")

    def test_requires_login(self):
        with self.assertRaises(NotLoggedInError):
            self.controller.create_user("qa@bugboard.io", "pw", UserType.USER)

    def test_requires_admin(self):
        self.session.login(self.user, "tok1")
        with self.assertRaises(NotAuthorizedError):
            self.controller.create_user("qa@bugboard.io", "pw", UserType.USER)
        self.services.users.create.assert_not_called()

    def test_rejects_duplicate_in_store(self):
        self.session.login(self.admin, "tok2")
        self.store.users.replace_all([User(username="qa@bugboard.io", id=5)])
        with self.assertRaises(ValidationError):
            self.controller.create_user(" QA@bugboard.io ", "pw", UserType.USER)

    def test_rejects_empty_fields(self):
        self.session.login(self.admin, "tok2")
        with self.assertRaises(ValidationError):
            self.controller.create_user(" ", "pw", UserType.USER)
        with self.assertRaises(ValidationError):
            self.controller.create_user("qa@bugboard.io", "", UserType.USER)
        with self.assertRaises(ValidationError):
            self.controller.create_user("qa@bugboard.io", "pw", None)

    def test_create_user(self):
        self.session.login(self.admin, "tok2")
        self.services.users.create.return_value = User(username="qa@bugboard.io", id=5)
        created = []

        self.complete(self.controller.create_user(" QA@BugBoard.io ", "pw", UserType.USER, on_success=created.append))

        sent = self.services.users.create.call_args[0][0]
        self.assertEqual(sent.username, "qa@bugboard.io")
        self.assertEqual(sent.password, "pw")
        self.assertEqual(created[0].id, 5)
        self.assertIsNotNone(self.store.find_user("qa@bugboard.io"))

    def test_existing_user_on_server_is_refused(self):
        self.session.login(self.admin, "tok2")
        self.services.users.exists_user.side_effect = None
        self.services.users.exists_user.return_value = True
        failures = []

        self.complete(self.controller.create_user("qa@bugboard.io", "pw", UserType.USER, on_failure=failures.append))

        self.assertIsInstance(failures[0], UserError)
        self.services.users.create.assert_not_called()
        self.assertEqual(len(self.store.users), 0)

    def test_unreachable_existence_check_refuses_creation(self):
        self.session.login(self.admin, "tok2")
        self.services.users.exists_user.side_effect = CommunicationError("timeout")
        failures = []

        self.complete(self.controller.create_user("qa@bugboard.io", "pw", UserType.USER, on_failure=failures.append))

        self.assertEqual(len(failures), 1)
        self.services.users.create.assert_not_called()

    def test_refresh_users(self):
        self.session.login(self.admin, "tok2")
        self.services.users.fetch_all.return_value = [User(username="a@b.c", id=1), User(username="d@e.f", id=2)]
        self.complete(self.controller.refresh())
        self.assertEqual(len(self.store.users), 2)

    def test_create_user_failure_does_not_touch_store(self):
        self.session.login(self.admin, "tok2")
        self.store.users.replace_all([User(username="dev@bugboard.io", id=1)])
        self.services.users.create.side_effect = UserError("down")
        created, failures = [], []

        self.complete(self.controller.create_user(
            "qa@bugboard.io", "pw", UserType.USER, on_success=created.append, on_failure=failures.append
        ))

        self.assertEqual([u.username for u in self.store.users], ["dev@bugboard.io"])
        self.assertIsNone(self.store.find_user("qa@bugboard.io"))
        self.assertEqual(created, [])
        self.assertIsInstance(failures[0], UserError)


class TestCommentController(ControllerTestCase):
    def setUp(self):
        super().setUp()
        self.controller = CommentController(self.session, self.store, self.services, self.runner)
        self.session.login(self.user, "tok1")
        self.issue = make_issue(4)

    def test_load_comments(self):
        self.services.comments.fetch_for_issue.return_value = [Comment("first", 4, id=1), Comment("second", 4, id=2)]
        self.complete(self.controller.load_comments(self.issue))

        self.services.comments.fetch_for_issue.assert_called_once_with(4)
        self.assertEqual([c.content for c in self.issue.comments], ["first", "second"])

    def test_load_comments_failure_keeps_existing(self):
        self.issue.add_comment(Comment("cached", 4, id=1))
        self.services.comments.fetch_for_issue.side_effect = CommunicationError("down")
        failures = []

        self.complete(self.controller.load_comments(self.issue, on_failure=failures.append))

        self.assertEqual([c.content for c in self.issue.comments], ["cached"])
        self.assertEqual(len(failures), 1)

    def test_stale_comment_load_is_dropped(self):
        release = threading.Event()
        self.services.comments.fetch_for_issue = lambda issue_id: (release.wait(5), [Comment("old", 4)])[1]
        slow = self.controller.load_comments(self.issue)
        self.services.comments.fetch_for_issue = lambda issue_id: [Comment("new", 4)]
        fast = self.controller.load_comments(self.issue)

        self.complete(fast)
        release.set()
        self.complete(slow)

        self.assertEqual([c.content for c in self.issue.comments], ["new"])

    def test_add_comment(self):
        self.services.comments.create.return_value = Comment("Looks good", 4, author=self.user, id=9)
        self.complete(self.controller.add_comment(self.issue, " Looks good "))

        sent = self.services.comments.create.call_args[0][0]
        self.assertEqual(sent.content, "Looks good")
        self.assertEqual(sent.issue_id, 4)
        self.assertEqual(sent.author, self.user)
        self.assertEqual([c.id for c in self.issue.comments], [9])

    def test_add_comment_validation(self):
        with self.assertRaises(ValidationError):
            self.controller.add_comment(self.issue, "   ")
        with self.assertRaises(ValidationError):
            self.controller.add_comment(None, "text")
        with self.assertRaises(ValidationError):
            self.controller.add_comment(Issue("Draft", "desc", IssueType.BUG, Priority.LOW, IssueState.TODO), "text")
        self.session.logout()
        with self.assertRaises(NotLoggedInError):
            self.controller.add_comment(self.issue, "text")
        self.services.comments.create.assert_not_called()

    def test_add_comment_failure_keeps_comments(self):
        self.issue.add_comment(Comment("cached", 4, id=1))
        self.services.comments.create.side_effect = CommentError("down")
        created, failures = [], []

        self.complete(self.controller.add_comment(
            self.issue, "Looks good", on_success=created.append, on_failure=failures.append
        ))

        self.assertEqual([c.id for c in self.issue.comments], [1])
        self.assertEqual(created, [])
        self.assertIsInstance(failures[0], CommentError)


if __name__ == '__main__':
    unittest.main()
