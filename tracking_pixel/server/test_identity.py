import unittest
import uuid
from datetime import datetime, timezone
from unittest import mock

from tracking_pixel.server.identity import VisitorCookie, new_visitor_id, resolve_cookie

EXPIRES = datetime(2038, 1, 1, tzinfo=timezone.utc)


class TestIdentity(unittest.TestCase):
    def test_existing_cookie_value_kept_and_expiry_refreshed(self):
        c = resolve_cookie({"uid": "abc-123", "other": "x"}, name="uid", expires=EXPIRES)
        self.assertEqual(c, VisitorCookie(name="uid", value="abc-123", expires=EXPIRES))
        self.assertFalse(c.is_new)

    def test_missing_cookie_mints_uuid4(self):
        c = resolve_cookie({"other": "x"}, name="uid", expires=EXPIRES)
        self.assertTrue(c.is_new)
        self.assertEqual(c.name, "uid")
        self.assertEqual(c.expires, EXPIRES)
        self.assertEqual(uuid.UUID(c.value).version, 4)

    def test_empty_cookie_value_is_treated_as_missing(self):
        c = resolve_cookie({"uid": ""}, name="uid", expires=EXPIRES)
        self.assertTrue(c.is_new)
        self.assertNotEqual(c.value, "")

    def test_minted_ids_do_not_collide(self):
        ids = {resolve_cookie({}, name="uid", expires=EXPIRES).value for _ in range(5000)}
        self.assertEqual(len(ids), 5000)

    def test_fallback_when_os_random_fails(self):
        with mock.patch("tracking_pixel.server.identity.uuid.uuid4", side_effect=NotImplementedError("no urandom")):
            with self.assertLogs("tracking_pixel.server.identity", level="WARNING"):
                a = new_visitor_id()
            with self.assertLogs("tracking_pixel.server.identity", level="WARNING"):
                b = new_visitor_id()
        self.assertNotEqual(a, b)
        self.assertEqual(uuid.UUID(a).version, 4)
        self.assertEqual(uuid.UUID(b).version, 4)


if __name__ == "__main__":
    unittest.main()
