from django.conf import settings
from django.test import SimpleTestCase


class LoggingConfigTests(SimpleTestCase):
    def test_every_formatter_is_used(self):
        used = {
            handler.get("formatter")
            for handler in settings.LOGGING["handlers"].values()
        }
        self.assertEqual(set(settings.LOGGING["formatters"]), used)

    def test_fleet_logger_writes_to_console(self):
        self.assertEqual(settings.LOGGING["loggers"]["fleet"]["handlers"], ["console"])
