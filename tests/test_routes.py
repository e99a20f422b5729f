"""Tests for the JSON endpoints."""

import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from firebase_admin.exceptions import UnavailableError

from secretcompliments import create_app
from tests.mock_utils import make_live_db


class RoutesTestCase(unittest.TestCase):
    """Two browsers talking to one app over a simulated Firestore."""

    def setUp(self):
        self.db = make_live_db()
        self.mock_firestore_service = MagicMock()
        self.mock_firestore_service.client.return_value = self.db

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore_app": patch(
                "secretcompliments.firestore", new=self.mock_firestore_service
            ),
            "auth": patch("secretcompliments.auth.identity.auth"),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)
        self.mocks["auth"].create_user.side_effect = [
            MagicMock(uid="alice"),
            MagicMock(uid="bob"),
        ]

        tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(tmpdir.cleanup)
        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "SECRET_KEY": "test",
                "LAST_GROUP_FILE": os.path.join(tmpdir.name, "last_group.json"),
                "BACKGROUND_DISPOSAL": False,
            }
        )
        self.registry = self.app.extensions["session_registry"]
        self.addCleanup(self.registry.close_all)
        self.alice = self.app.test_client()
        self.bob = self.app.test_client()

    def _state(self, client):
        response = client.get("/api/state")
        self.assertEqual(response.status_code, 200)
        return response.get_json()

    def test_first_visit_creates_an_identity(self):
        state = self._state(self.alice)
        self.assertEqual(state["userId"], "alice")
        self.assertEqual(state["state"], "auth_ready_no_profile")
        self.assertIn("csrfToken", state)
        with self.alice.session_transaction() as sess:
            self.assertEqual(sess["uid"], "alice")

        # The second request reuses the live session.
        self._state(self.alice)
        self.mocks["auth"].create_user.assert_called_once()
        self.assertEqual(len(self.registry), 1)

    def test_blank_name_is_a_notice(self):
        response = self.alice.post("/api/profile", data={"name": "  "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json(),
            {"notice": {"message": "Please enter a name.", "type": "error"}},
        )

    def test_full_flow(self):
        self.alice.post("/api/profile", data={"name": "Alice"})
        response = self.alice.post("/api/groups", data={"name": "Book Club"})
        self.assertEqual(response.status_code, 201)
        group_id = response.get_json()["groupId"]

        self.bob.post("/api/profile", data={"name": "Bob"})
        response = self.bob.post("/api/groups/join", data={"group_id": group_id})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()["name"], "Book Club")

        response = self.alice.post(
            "/api/compliments", data={"receiver_id": "bob", "message": "You're great!"}
        )
        self.assertEqual(response.status_code, 201)

        bob_state = self._state(self.bob)
        self.assertEqual(bob_state["state"], "in_group")
        self.assertEqual([m["userName"] for m in bob_state["members"]], ["Alice", "Bob"])
        self.assertEqual([c["message"] for c in bob_state["received"]], ["You're great!"])
        self.assertEqual(bob_state["sent"], [])

        alice_state = self._state(self.alice)
        self.assertEqual(alice_state["sent"][0]["receiverName"], "Bob")
        self.assertIn(
            {"message": "Secret compliment sent!", "type": "success"},
            alice_state["notices"],
        )
        # Notices are handed out once.
        self.assertEqual(self._state(self.alice)["notices"], [])

        response = self.alice.post("/api/groups/leave")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self._state(self.alice)["state"], "no_group_selected")

    def test_join_unknown_group(self):
        self.alice.post("/api/profile", data={"name": "Alice"})
        response = self.alice.post("/api/groups/join", data={"group_id": "nope"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(
            response.get_json()["notice"]["message"], "No group found with that ID."
        )

    def test_missing_compliment_fields(self):
        response = self.alice.post("/api/compliments", data={"receiver_id": "bob"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.get_json()["notice"]["message"],
            "Please select a member and write a message.",
        )

    def test_identity_provider_down(self):
        self.mocks["auth"].create_user.side_effect = UnavailableError("down")
        state = self._state(self.alice)
        self.assertEqual(state["state"], "unauthenticated")
        self.assertIsNone(state["userId"])

        response = self.alice.post("/api/profile", data={"name": "Alice"})
        self.assertEqual(response.status_code, 503)
        self.assertEqual(len(self.registry), 0)

    def test_unknown_route_creates_no_identity(self):
        response = self.alice.get("/nope")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["notice"]["message"], "Not found.")
        self.mocks["auth"].create_user.assert_not_called()
        self.assertEqual(len(self.registry), 0)
        with self.alice.session_transaction() as sess:
            self.assertNotIn("uid", sess)


if __name__ == "__main__":
    unittest.main()
