"""Shared setup for route tests."""

import unittest
from unittest.mock import patch

from pickupboard import create_app
from tests.mock_utils import build_db


class BaseTestCase(unittest.TestCase):
    """Runs the app against a MockFirestore database."""

    def setUp(self):
        self.db = build_db(self)
        patcher = patch("firebase_admin.firestore.client", return_value=self.db)
        patcher.start()
        self.addCleanup(patcher.stop)

        self.app = create_app(
            {
                "TESTING": True,
                "WTF_CSRF_ENABLED": False,
                "TIME_ZONE": "UTC",
                "GOOGLE_CLIENT_ID": "client-id",
                "GOOGLE_CLIENT_SECRET": "client-secret",  # nosec
            }
        )
        self.client = self.app.test_client()

    def login(self, name):
        """Put a display name in the session."""
        with self.client.session_transaction() as sess:
            sess["user_name"] = name

    def post_json(self, url, payload=None):
        return self.client.post(url, json=payload if payload is not None else {})
