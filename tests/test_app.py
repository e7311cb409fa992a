"""Tests for the app factory."""

import os
import unittest
from unittest.mock import patch

from pickupboard import create_app


class AppFactoryTestCase(unittest.TestCase):
    """Test case for the app factory."""

    @patch("firebase_admin.initialize_app")
    def test_testing_skips_firebase(self, mock_init_app):
        """Firebase is not initialized in testing mode."""
        create_app({"TESTING": True})
        mock_init_app.assert_not_called()

    def test_404_error_handler(self):
        """Unknown routes get a JSON 404."""
        app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False})
        with app.test_client() as client:
            response = client.get("/non_existent_page")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.get_json()["status"], "error")

    def test_sports_catalog(self):
        """The sport catalog is served as JSON."""
        app = create_app({"TESTING": True})
        with app.test_client() as client:
            response = client.get("/sports")
        self.assertEqual(response.status_code, 200)
        sports = response.get_json()
        self.assertEqual(len(sports), 4)
        self.assertEqual(sports[0]["id"], "billiards")
        self.assertIn("locationHint", sports[0])

    def test_config_defaults(self):
        """Defaults apply when the environment is silent."""
        with patch.dict(os.environ, {}, clear=True):
            app = create_app({"TESTING": True})
        self.assertEqual(app.config["TIME_ZONE"], "America/New_York")
        self.assertEqual(app.config["EXPIRY_SWEEP_SECONDS"], 60)
        self.assertEqual(app.config["CALENDAR_HTTP_TIMEOUT"], 30.0)
        self.assertTrue(app.config["CHALLENGE_TIME_REQUIRED"])
        self.assertTrue(app.config["CALENDAR_SYNC_ENABLED"])

    def test_config_from_environment(self):
        """Environment variables override the defaults."""
        env_vars = {
            "TIME_ZONE": "Europe/London",
            "EXPIRY_SWEEP_SECONDS": "5",
            "CHALLENGE_TIME_REQUIRED": "false",
        }
        with patch.dict(os.environ, env_vars):
            app = create_app({"TESTING": True})
        self.assertEqual(app.config["TIME_ZONE"], "Europe/London")
        self.assertEqual(app.config["EXPIRY_SWEEP_SECONDS"], 5)
        self.assertFalse(app.config["CHALLENGE_TIME_REQUIRED"])


if __name__ == "__main__":
    unittest.main()
