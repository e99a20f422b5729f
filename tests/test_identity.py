"""Tests for the anonymous identity session."""

from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

from firebase_admin.auth import UserNotFoundError
from firebase_admin.exceptions import UnavailableError

from secretcompliments.auth.identity import IdentitySession


class IdentitySessionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        patcher = patch("secretcompliments.auth.identity.auth")
        self.mock_auth = patcher.start()
        self.addCleanup(patcher.stop)
        self.mock_auth.create_user.return_value = MagicMock(uid="new-user")

    def test_creates_user_without_resume_id(self) -> None:
        session = IdentitySession()
        self.assertFalse(session.is_ready)
        self.assertTrue(session.start())
        self.assertEqual(session.uid, "new-user")
        self.mock_auth.get_user.assert_not_called()

    def test_resumes_existing_user(self) -> None:
        self.mock_auth.get_user.return_value = MagicMock(uid="old-user")
        session = IdentitySession("old-user")
        session.start()
        self.assertEqual(session.uid, "old-user")
        self.mock_auth.create_user.assert_not_called()

    def test_unknown_resume_id_creates_new_user(self) -> None:
        self.mock_auth.get_user.side_effect = UserNotFoundError("gone")
        session = IdentitySession("deleted-user")
        session.start()
        self.assertEqual(session.uid, "new-user")

    def test_provider_unavailable_stays_unresolved(self) -> None:
        self.mock_auth.create_user.side_effect = UnavailableError("down")
        listener = MagicMock()
        session = IdentitySession()
        session.on_ready(listener)

        self.assertFalse(session.start())
        self.assertIsNone(session.uid)
        listener.assert_not_called()

        # The provider recovers; readiness arrives late and only once.
        self.mock_auth.create_user.side_effect = None
        self.assertTrue(session.start())
        listener.assert_called_once_with("new-user")

    def test_ready_fires_exactly_once(self) -> None:
        listener = MagicMock()
        session = IdentitySession()
        session.on_ready(listener)
        session.start()
        session.start()
        listener.assert_called_once_with("new-user")
        self.mock_auth.create_user.assert_called_once()

    def test_listener_added_after_ready_runs_immediately(self) -> None:
        session = IdentitySession()
        session.start()
        listener = MagicMock()
        session.on_ready(listener)
        listener.assert_called_once_with("new-user")


if __name__ == "__main__":
    unittest.main()
