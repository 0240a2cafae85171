import os
import unittest
from unittest.mock import patch


class SettingsTests(unittest.TestCase):
    def test_defaults(self):
        from incident_sync.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            s = Settings(_env_file=None)

        self.assertTrue(s.enable_keep_alives)
        self.assertTrue(s.verify_certificate)
        self.assertFalse(s.supports_rich_text)
        self.assertTrue(s.get_new_items_from_remote)
        self.assertEqual(s.time_offset_hours, 0)
        self.assertEqual(s.request_timeout_seconds, 1200)

    def test_environment_overrides_are_case_insensitive(self):
        from incident_sync.config import Settings

        env = {
            "REMOTE_URL": "https://bugs.example",
            "time_offset_hours": "-5",
            "SUPPORTS_RICH_TEXT": "true",
            "GET_NEW_ITEMS_FROM_REMOTE": "false",
            "SYNC_SYSTEM_ID": "7",
        }
        with patch.dict(os.environ, env, clear=True):
            s = Settings(_env_file=None)

        self.assertEqual(s.remote_url, "https://bugs.example")
        self.assertEqual(s.time_offset_hours, -5)
        self.assertTrue(s.supports_rich_text)
        self.assertFalse(s.get_new_items_from_remote)
        self.assertEqual(s.sync_system_id, 7)


if __name__ == "__main__":
    unittest.main()
