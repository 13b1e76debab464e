import json
import unittest
from unittest.mock import MagicMock

from bugboard.core.api_client import ApiError, CommunicationError
from bugboard.core.controllers import AuthController
from bugboard.core.models import User, UserType
from bugboard.core.services import Services
from bugboard.core.session import Session
from bugboard.utils.background_worker import Dispatcher, TaskRunner


class TestAuthController(unittest.TestCase):
    def setUp(self):
        self.session = Session()
        self.api = MagicMock()
        self.services = Services(self.api)
        self.issues = MagicMock()
        self.dispatcher = Dispatcher()
        self.runner = TaskRunner(self.dispatcher)
        self.addCleanup(self.runner.shutdown, True)
        self.auth = AuthController(self.session, self.services, self.issues, self.runner)

    def test_login_success_starts_session_and_refresh(self):
        self.api.post.return_value = json.dumps({"token": "tok1", "id": 7, "role": ["ROLE_USER"]})

        self.assertTrue(self.auth.login("dev@bugboard.io", "pw"))

        self.assertTrue(self.session.is_logged_in())
        self.assertEqual(self.session.token, "tok1")
        self.assertEqual(self.session.user.id, 7)
        self.assertIs(self.session.user.role, UserType.USER)
        self.issues.refresh.assert_called_once()

    def test_blank_credentials_fail_without_request(self):
        self.assertFalse(self.auth.login("  ", "pw"))
        self.assertFalse(self.auth.login("dev@bugboard.io", ""))
        self.assertFalse(self.auth.login(None, None))
        self.api.post.assert_not_called()
        self.assertFalse(self.session.is_logged_in())

    def test_failures_leave_session_untouched(self):
        previous = User(username="old@bugboard.io", id=1)
        self.session.login(previous, "old-token")

        for error in (CommunicationError("timeout"), ApiError(401, "unauthorized")):
            self.api.post.side_effect = error
            self.assertFalse(self.auth.login("dev@bugboard.io", "pw"))

        self.api.post.side_effect = None
        self.api.post.return_value = json.dumps({"id": 7})
        self.assertFalse(self.auth.login("dev@bugboard.io", "pw"))

        self.assertEqual(self.session.token, "old-token")
        self.assertIs(self.session.user, previous)
        self.issues.refresh.assert_not_called()

    def test_login_async(self):
        self.api.post.return_value = json.dumps({"token": "tok1", "id": 7, "role": "ADMIN"})
        outcomes = []

        future = self.auth.login_async("root@bugboard.io", "pw", outcomes.append)
        future.result(timeout=5)
        self.assertFalse(self.session.is_logged_in())
        self.dispatcher.drain()

        self.assertEqual(outcomes, [True])
        self.assertTrue(self.session.is_admin())
        self.issues.refresh.assert_called_once()

    def test_login_async_failure(self):
        self.api.post.side_effect = CommunicationError("down")
        outcomes = []

        self.auth.login_async("dev@bugboard.io", "pw", outcomes.append).result(timeout=5)
        self.dispatcher.drain()

        self.assertEqual(outcomes, [False])
        self.assertFalse(self.session.is_logged_in())

    def test_login_async_blank_credentials(self):
        outcomes = []
        self.assertIsNone(self.auth.login_async("", "pw", outcomes.append))
        self.dispatcher.drain()
        self.assertEqual(outcomes, [False])

    def test_logout_is_idempotent(self):
        self.session.login(User(username="dev@bugboard.io"), "tok1")
        self.auth.logout()
        self.auth.logout()
        self.assertFalse(self.session.is_logged_in())


if __name__ == '__main__':
    unittest.main()
