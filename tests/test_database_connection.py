import unittest
from unittest.mock import MagicMock, patch

from ski_manager.database import connection


class ConnectionSettingsTests(unittest.TestCase):
    def test_individual_variables_build_the_settings(self):
        env = {"DB_NAME": "ski", "DB_USER": "coach", "DB_PASSWORD": "pw", "DB_HOST": "db", "DB_PORT": "6543"}
        with patch.dict("os.environ", env, clear=True):
            settings = connection.connection_settings()

        self.assertEqual(settings["dbname"], "ski")
        self.assertEqual(settings["port"], "6543")
        self.assertIn("search_path=ski,public", settings["options"])

    def test_database_url_takes_precedence(self):
        env = {"SKI_DATABASE_URL": "postgresql://localhost/ski", "DB_NAME": "ignored"}
        with patch.dict("os.environ", env, clear=True):
            settings = connection.connection_settings()

        self.assertEqual(settings["dsn"], "postgresql://localhost/ski")
        self.assertNotIn("dbname", settings)


class GetConnectionTests(unittest.TestCase):
    def test_returns_connection(self):
        fake_conn = MagicMock()
        with patch.object(connection.psycopg2, "connect", return_value=fake_conn) as connect:
            self.assertIs(connection.get_db_connection(), fake_conn)
        self.assertIn("options", connect.call_args.kwargs)

    def test_returns_none_when_unreachable(self):
        with patch.object(connection.psycopg2, "connect", side_effect=RuntimeError("refused")):
            self.assertIsNone(connection.get_db_connection())


if __name__ == "__main__":
    unittest.main()
