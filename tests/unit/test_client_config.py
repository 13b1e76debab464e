import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from bugboard.core.config import DEFAULT_API_BASE_URL
from bugboard.utils import config_manager
from bugboard.utils.config_manager import ClientSettings, effective_api_url, load_config, save_config


class TestConfigManager(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.path = Path(self.tmp.name) / ".bugboard_config.json"
        patcher = patch.object(config_manager, "CONFIG_PATH", self.path)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_missing_file_gives_defaults(self):
        settings = load_config()
        self.assertEqual(settings, ClientSettings())
        self.assertEqual(settings.api_base_url, DEFAULT_API_BASE_URL)

    def test_round_trip(self):
        save_config(ClientSettings(api_base_url="http://tracker:9000/api", last_email="qa@bugboard.io",
                                   appearance_mode="Light"))
        settings = load_config()
        self.assertEqual(settings.api_base_url, "http://tracker:9000/api")
        self.assertEqual(settings.last_email, "qa@bugboard.io")
        self.assertEqual(settings.appearance_mode, "Light")

    def test_saved_file_has_no_secrets(self):
        save_config(ClientSettings(last_email="qa@bugboard.io"))
        data = json.loads(self.path.read_text())
        self.assertEqual(set(data), {"api_base_url", "last_email", "appearance_mode"})

    def test_unknown_keys_ignored(self):
        self.path.write_text(json.dumps({"last_email": " qa@bugboard.io ", "token": "leaked"}))
        settings = load_config()
        self.assertEqual(settings.last_email, "qa@bugboard.io")
        self.assertFalse(hasattr(settings, "token"))

    def test_corrupted_file_gives_defaults(self):
        self.path.write_text("{not json")
        self.assertEqual(load_config(), ClientSettings())

    def test_environment_overrides_url(self):
        settings = ClientSettings(api_base_url="http://saved/api/")
        with patch.dict(os.environ, {"BUGBOARD_API_URL": "http://env/api"}):
            self.assertEqual(effective_api_url(settings), "http://env/api")
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(effective_api_url(settings), "http://saved/api")


if __name__ == '__main__':
    unittest.main()
