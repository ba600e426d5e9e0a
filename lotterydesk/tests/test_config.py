import os
import unittest
from unittest import mock

import lotterydesk.config as config_module


class LoadSettingsTests(unittest.TestCase):
    def setUp(self) -> None:
        config_module.load_settings.cache_clear()

    def tearDown(self) -> None:
        config_module.load_settings.cache_clear()

    def test_defaults(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True), mock.patch.object(config_module, "load_dotenv"):
            settings = config_module.load_settings()

        self.assertEqual(settings.database_url, "sqlite:///lotterydesk.db")
        self.assertIsNone(settings.admin_api_key)
        self.assertEqual(settings.booking.policy, "strict")
        self.assertEqual(settings.booking.max_retries, 25)
        self.assertEqual(settings.notifier.backend, "log")

    def test_environment_overrides(self) -> None:
        environ = {
            "DATABASE_URL": "postgresql://db/lottery",
            "TICKET_ALLOCATION_POLICY": "Lenient",
            "BOOKING_MAX_RETRIES": "5",
            "NOTIFIER_BACKEND": "smtp",
            "NOTIFIER__SMTP_PORT": "2525",
            "NOTIFIER__SMTP_STARTTLS": "yes",
            "FLASK_DEBUG": "0",
        }
        with mock.patch.dict(os.environ, environ, clear=True), mock.patch.object(config_module, "load_dotenv"):
            settings = config_module.load_settings()

        self.assertEqual(settings.database_url, "postgresql://db/lottery")
        self.assertEqual(settings.booking.policy, "lenient")
        self.assertEqual(settings.booking.max_retries, 5)
        self.assertEqual(settings.notifier.smtp_port, 2525)
        self.assertTrue(settings.notifier.smtp_starttls)
        self.assertFalse(settings.flask.debug)

    def test_invalid_values_fail_fast(self) -> None:
        for environ in ({"TICKET_ALLOCATION_POLICY": "random"}, {"BOOKING_MAX_RETRIES": "many"}):
            config_module.load_settings.cache_clear()
            with mock.patch.dict(os.environ, environ, clear=True), mock.patch.object(config_module, "load_dotenv"):
                with self.assertRaises(RuntimeError):
                    config_module.load_settings()


if __name__ == "__main__":
    unittest.main()
