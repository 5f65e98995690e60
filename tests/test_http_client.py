"""Tests for http_client module."""

import re
import unittest

import requests

from oss_resolver.http_client import USER_AGENT, create_session, get_default_headers


class TestUserAgent(unittest.TestCase):
    """Tests for USER_AGENT constant."""

    def test_user_agent_has_version(self):
        """Test USER_AGENT is "oss-resolver/<version>"."""
        name, version = USER_AGENT.split("/")
        self.assertEqual(name, "oss-resolver")
        is_valid_version = re.match(r"^\d+\.\d+(\.\d+)?(-[\w.]+)?$", version) is not None
        self.assertTrue(
            is_valid_version or version == "unknown",
            f"Version '{version}' is neither a valid version pattern nor 'unknown'",
        )


class TestGetDefaultHeaders(unittest.TestCase):
    """Tests for get_default_headers function."""

    def test_default_headers_minimal(self):
        headers = get_default_headers()
        self.assertEqual(headers, {"User-Agent": USER_AGENT})

    def test_default_headers_with_accept(self):
        headers = get_default_headers(accept="application/json")
        self.assertEqual(headers["Accept"], "application/json")
        self.assertEqual(headers["User-Agent"], USER_AGENT)


class TestCreateSession(unittest.TestCase):
    def test_session_carries_user_agent(self):
        session = create_session()
        try:
            self.assertIsInstance(session, requests.Session)
            self.assertEqual(session.headers["User-Agent"], USER_AGENT)
        finally:
            session.close()
