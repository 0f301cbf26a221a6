import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from v2node_manager.cli import main
from v2node_manager.config import Config
from v2node_manager.store import ConfigStoreError


class FakeConfigManager:
    def __init__(self, config: Config):
        self._config = config

    def load_config(self) -> Config:
        return self._config

    def save_config(self, **kwargs) -> None:
        pass


class CliTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = Config(config_file=str(Path(self._tmp.name) / "config.json"), restart=False)
        patcher = patch("v2node_manager.cli.ConfigManager", return_value=FakeConfigManager(self.config))
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._tmp.cleanup)

    @patch("v2node_manager.cli.NodeMenu.run", return_value=0)
    def test_main_creates_default_config_and_runs_menu(self, mock_run):
        self.assertEqual(main([]), 0)

        self.assertTrue(Path(self.config.config_file).exists())
        mock_run.assert_called_once()

    @patch("v2node_manager.cli.NodeMenu.run", side_effect=ConfigStoreError("permission denied"))
    def test_store_error_exits_with_one(self, mock_run):
        self.assertEqual(main([]), 1)

    @patch("v2node_manager.cli.NodeMenu.run", side_effect=KeyboardInterrupt)
    def test_interrupt_exits_with_130(self, mock_run):
        self.assertEqual(main([]), 130)


if __name__ == "__main__":
    unittest.main()
