import json
import tempfile
import unittest
from pathlib import Path

from coursebook.config import Settings, load_settings
from coursebook.errors import ConfigError


class TestLoadSettings(unittest.TestCase):
    def test_defaults_need_project_id(self) -> None:
        with self.assertRaises(ConfigError):
            load_settings(environ={})

    def test_environment(self) -> None:
        s = load_settings(
            environ={"FIREBASE_PROJECT_ID": "demo", "FIREBASE_API_KEY": "k", "COURSEBOOK_TIMEOUT": "2.5"}
        )
        self.assertEqual((s.backend, s.firebase_project_id, s.api_key, s.timeout), ("firestore", "demo", "k", 2.5))
        self.assertEqual(s.owner_id, "super-admin-user-id")

    def test_file_then_env_then_overrides(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text(json.dumps({"backend": "local", "owner_id": "from-file", "timezone": "UTC"}), encoding="utf-8")

            s = load_settings(p, environ={"COURSEBOOK_OWNER_ID": "from-env"}, data_file="x.json")
            self.assertEqual(s.backend, "local")
            self.assertEqual(s.owner_id, "from-env")
            self.assertEqual(s.timezone, "UTC")
            self.assertEqual(s.data_file, "x.json")

    def test_config_path_from_environment(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "config.json"
            p.write_text(json.dumps({"backend": "local"}), encoding="utf-8")
            self.assertEqual(load_settings(environ={"COURSEBOOK_CONFIG": str(p)}).backend, "local")

    def test_bad_values(self) -> None:
        with self.assertRaises(ConfigError):
            load_settings(environ={"COURSEBOOK_BACKEND": "mongo"})
        with self.assertRaises(ConfigError):
            load_settings(environ={"COURSEBOOK_BACKEND": "local", "COURSEBOOK_TIMEOUT": "soon"})
        with self.assertRaises(ConfigError):
            load_settings(environ={}, backend="local", colour="blue")

    def test_bad_files(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            missing = Path(d) / "missing.json"
            with self.assertRaises(ConfigError):
                load_settings(missing, environ={})

            unknown = Path(d) / "unknown.json"
            unknown.write_text(json.dumps({"backend": "local", "nope": 1}), encoding="utf-8")
            with self.assertRaises(ConfigError):
                load_settings(unknown, environ={})

    def test_settings_validate(self) -> None:
        self.assertEqual(Settings(backend="local").validate().backend, "local")


if __name__ == "__main__":
    unittest.main()
