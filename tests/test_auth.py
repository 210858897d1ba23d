"""Tests for admin tokens."""

import unittest
from unittest.mock import patch

import config
from leaderboard import auth
from leaderboard.errors import AdminRequired, ConfigurationError


class TestAdminTokens(unittest.TestCase):

    def setUp(self):
        p = patch("config.admin_code", return_value="66789035611")
        p.start()
        self.addCleanup(p.stop)

    def test_issue_and_verify(self):
        token = auth.issue_token("66789035611", now=1000)
        self.assertTrue(auth.is_valid(token, now=1000))
        self.assertTrue(auth.is_valid(token, now=1000 + config.ADMIN_SESSION_TTL))

    def test_wrong_code(self):
        with self.assertRaises(AdminRequired) as ctx:
            auth.issue_token("66789035612")
        self.assertEqual(str(ctx.exception), "Invalid admin password")

    def test_token_expires(self):
        token = auth.issue_token("66789035611", now=1000)
        self.assertFalse(auth.is_valid(token, now=1001 + config.ADMIN_SESSION_TTL))
        self.assertFalse(auth.is_valid(token, now=999))

    def test_tampered_tokens(self):
        token = auth.issue_token("66789035611", now=1000)
        issued, _, signature = token.partition(".")
        for bad in (None, "", "nodot", f"2000.{signature}", f"abc.{signature}", f"{issued}.{'0' * 64}"):
            with self.subTest(token=bad):
                self.assertFalse(auth.is_valid(bad, now=1000))

    def test_changing_code_revokes_tokens(self):
        token = auth.issue_token("66789035611", now=1000)
        with patch("config.admin_code", return_value="new-code"):
            self.assertFalse(auth.is_valid(token, now=1000))

    def test_require_admin(self):
        with self.assertRaises(AdminRequired):
            auth.require_admin(None)
        auth.require_admin(auth.issue_token("66789035611"))

    def test_unconfigured_code(self):
        with patch("config.admin_code", return_value=None):
            with self.assertRaises(ConfigurationError):
                auth.issue_token("anything")
            self.assertFalse(auth.is_valid("1000.abc"))


if __name__ == "__main__":
    unittest.main()
