"""Unit tests for environment-backed settings."""

import os
import tempfile
import unittest
from unittest.mock import patch

from archlens.config import Settings, get_settings, use_settings


class TestSettings(unittest.TestCase):
    """Test lookups and fallbacks."""

    def test_get_from_environ(self):
        s = Settings(environ={"A": "1"})
        self.assertEqual(s.get("A"), "1")
        self.assertIsNone(s.get("B"))
        self.assertEqual(s.get("B", "x"), "x")

    def test_empty_string_is_unset(self):
        s = Settings(environ={"A": ""})
        self.assertIsNone(s.get("A"))
        self.assertFalse(s.has("A"))
        self.assertNotIn("A", s)

    def test_file_values_are_fallback(self):
        s = Settings(environ={"A": "env"}, file_values={"A": "file", "B": "file"})
        self.assertEqual(s.get("A"), "env")
        self.assertEqual(s.get("B"), "file")

    def test_empty_environ_falls_back_to_file(self):
        s = Settings(environ={"A": ""}, file_values={"A": "file"})
        self.assertEqual(s.get("A"), "file")

    def test_numeric_values(self):
        s = Settings(environ={"T": "30", "N": "12", "BAD": "soon"})
        self.assertEqual(s.get_float("T", 1.0), 30.0)
        self.assertEqual(s.get_int("N", 1), 12)
        self.assertEqual(s.get_float("BAD", 5.0), 5.0)
        self.assertEqual(s.get_int("BAD", 5), 5)
        self.assertEqual(s.get_int("MISSING", 7), 7)

    def test_reads_live_mapping(self):
        env = {}
        s = Settings(environ=env)
        env["LATE"] = "yes"
        self.assertEqual(s.get("LATE"), "yes")


class TestSettingsFromYaml(unittest.TestCase):
    """Test loading fallback values from YAML."""

    def _write(self, text: str) -> str:
        fd, path = tempfile.mkstemp(suffix=".yaml")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        self.addCleanup(os.remove, path)
        return path

    def test_flat_mapping(self):
        path = self._write("LLM_PROVIDER: openai\nLLM_TIMEOUT: 30\n")
        s = Settings.from_yaml(path, environ={})
        self.assertEqual(s.get("LLM_PROVIDER"), "openai")
        self.assertEqual(s.get_float("LLM_TIMEOUT", 120.0), 30.0)

    def test_env_section(self):
        path = self._write("env:\n  OPENAI_API_KEY: sk-test\n")
        s = Settings.from_yaml(path, environ={})
        self.assertEqual(s.get("OPENAI_API_KEY"), "sk-test")

    def test_environment_wins(self):
        path = self._write("LLM_PROVIDER: openai\n")
        s = Settings.from_yaml(path, environ={"LLM_PROVIDER": "local"})
        self.assertEqual(s.get("LLM_PROVIDER"), "local")

    def test_empty_file(self):
        path = self._write("")
        s = Settings.from_yaml(path, environ={})
        self.assertIsNone(s.get("ANYTHING"))

    def test_non_mapping_rejected(self):
        path = self._write("- a\n- b\n")
        with self.assertRaises(ValueError):
            Settings.from_yaml(path, environ={})


class TestGetSettings(unittest.TestCase):
    """Test settings resolution order."""

    def tearDown(self):
        use_settings(None)

    def test_explicit_mapping(self):
        self.assertEqual(get_settings({"A": "1"}).get("A"), "1")

    def test_settings_pass_through(self):
        s = Settings(environ={})
        self.assertIs(get_settings(s), s)

    def test_active_settings(self):
        s = Settings(environ={"A": "active"})
        use_settings(s)
        self.assertIs(get_settings(), s)

    @patch.dict(os.environ, {"ARCHLENS_TEST_VAR": "from-os"})
    def test_process_environment(self):
        self.assertEqual(get_settings().get("ARCHLENS_TEST_VAR"), "from-os")


if __name__ == "__main__":
    unittest.main()
