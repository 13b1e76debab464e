import unittest
from unittest.mock import MagicMock

from bugboard.core.api_client import ApiError, CommunicationError, NotFoundError
from bugboard.core.existence import ExistenceCheck, fail_safe_exists


class TestExistenceCheck(unittest.TestCase):
    def setUp(self):
        self.users = MagicMock()
        self.check = ExistenceCheck(self.users)

    def test_existing_user(self):
        self.users.exists_user.return_value = True
        self.assertTrue(self.check.exists_user("qa@bugboard.io"))

    def test_not_found_means_absent(self):
        self.users.exists_user.side_effect = NotFoundError(404, "missing")
        self.assertFalse(self.check.exists_user("qa@bugboard.io"))

    def test_email_is_normalized(self):
        self.users.exists_user.return_value = False
        self.check.exists_user("  QA@BugBoard.io ")
        self.users.exists_user.assert_called_once_with("qa@bugboard.io")

    def test_other_http_errors_are_raised(self):
        self.users.exists_user.side_effect = ApiError(500, "boom")
        with self.assertRaises(ApiError):
            self.check.exists_user("qa@bugboard.io")

    def test_network_failure_assumes_existing(self):
        self.users.exists_user.side_effect = CommunicationError("timeout")
        self.assertTrue(self.check.exists_user("qa@bugboard.io"))

    def test_unexpected_failure_assumes_existing(self):
        self.users.exists_user.side_effect = RuntimeError("interrupted")
        self.assertTrue(self.check.exists_user("qa@bugboard.io"))

    def test_policy_can_be_replaced(self):
        seen = []

        def permissive(error):
            seen.append(error)
            return False

        check = ExistenceCheck(self.users, policy=permissive)
        self.users.exists_user.side_effect = CommunicationError("timeout")
        self.assertFalse(check.exists_user("qa@bugboard.io"))
        self.assertIsInstance(seen[0], CommunicationError)

    def test_default_policy(self):
        self.assertTrue(fail_safe_exists(CommunicationError("timeout")))


if __name__ == '__main__':
    unittest.main()
