"""Tests for the user profile service."""

import unittest

from pickupboard.errors import AuthorizationError, NotFoundError, ValidationError
from pickupboard.user.services import UserService
from tests.mock_utils import build_db


class UserServiceTestCase(unittest.TestCase):
    """Tests for UserService."""

    def setUp(self):
        self.db = build_db(self)

    def test_ensure_profile_creates_and_merges(self):
        """Profiles are keyed by lowercase name and keep their tokens on re-login."""
        UserService.ensure_profile(self.db, "Ann", "uid-1")
        UserService.store_tokens(self.db, "ann", "token")
        profile = UserService.ensure_profile(self.db, "ANN", "uid-1")

        self.assertEqual(profile["displayName"], "ANN")
        self.assertEqual(profile["displayNameLower"], "ann")
        self.assertEqual(profile["googleAccessToken"], "token")
        self.assertTrue(UserService.has_calendar_access(profile))

    def test_name_owned_by_other_account(self):
        """A second account cannot take an existing name."""
        UserService.ensure_profile(self.db, "Ann", "uid-1")
        with self.assertRaises(AuthorizationError):
            UserService.ensure_profile(self.db, "ann", "uid-2")

    def test_blank_name(self):
        """Blank names are rejected."""
        with self.assertRaises(ValidationError):
            UserService.ensure_profile(self.db, "  ")

    def test_store_tokens_requires_profile(self):
        """Tokens can only be stored on an existing profile."""
        with self.assertRaises(NotFoundError):
            UserService.store_tokens(self.db, "Nobody", "token")
        with self.assertRaises(ValidationError):
            UserService.store_tokens(self.db, "Nobody", "")

    def test_clear_tokens(self):
        """Cleared profiles no longer have calendar access."""
        UserService.ensure_profile(self.db, "Ann")
        UserService.store_tokens(self.db, "Ann", "token", "refresh", 123)
        UserService.clear_tokens(self.db, "Ann")
        profile = UserService.get_profile(self.db, "ann")
        self.assertFalse(UserService.has_calendar_access(profile))
        self.assertIsNone(profile["googleTokenExpiry"])

    def test_get_missing_profile(self):
        """Unknown users have no profile."""
        self.assertIsNone(UserService.get_profile(self.db, "Nobody"))
        self.assertFalse(UserService.has_calendar_access(None))


if __name__ == "__main__":
    unittest.main()
