"""Settings validation."""

import unittest

from pydantic import ValidationError

from account_service.core.config import Settings


class TestSettingsValidation(unittest.TestCase):
    def test_rejects_non_postgres_database_url(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(DATABASE_URL="mysql://root@localhost/accounts")

    def test_rejects_blank_token_secret(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(REFRESH_TOKEN_SECRET="   ")

    def test_rejects_out_of_range_hash_rounds(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(PASSWORD_HASH_ROUNDS=2)

    def test_reset_url_must_be_http(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(PASSWORD_RESET_URL="ftp://example.com/reset")

    def test_cors_wildcard_dropped_in_prod(self) -> None:
        settings = Settings(APP_ENV="prod", CORS_ORIGIN="*, https://app.example.com")
        self.assertEqual(settings.cors_origins(), ["https://app.example.com"])
        dev = Settings(APP_ENV="dev", CORS_ORIGIN="*")
        self.assertEqual(dev.cors_origins(), ["*"])


if __name__ == "__main__":
    unittest.main()
