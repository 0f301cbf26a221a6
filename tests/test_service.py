import subprocess
import unittest
from types import SimpleNamespace
from unittest.mock import patch

from v2node_manager.service import (
    NullController,
    ServiceController,
    ServiceRestarter,
    SysVInitController,
    SystemdController,
    detect_controllers,
)


class FakeController(ServiceController):
    def __init__(self, name, outcome):
        super().__init__(use_sudo="never")
        self.name = name
        self.outcome = outcome
        self.calls = []

    def available(self, service):
        return True

    def restart(self, service):
        self.calls.append(service)
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def _completed(returncode=0, stdout=""):
    return SimpleNamespace(returncode=returncode, stdout=stdout, stderr="")


class ServiceRestarterTests(unittest.TestCase):
    def test_first_successful_controller_wins(self):
        first = FakeController("systemd", True)
        second = FakeController("sysvinit", True)

        result = ServiceRestarter("v2node", [first, second]).restart()

        self.assertTrue(result.success)
        self.assertEqual(result.controller, "systemd")
        self.assertEqual(second.calls, [])

    def test_falls_back_to_next_controller(self):
        first = FakeController("systemd", False)
        second = FakeController("sysvinit", True)

        result = ServiceRestarter("v2node", [first, second]).restart()

        self.assertEqual(result.controller, "sysvinit")
        self.assertEqual(first.calls, ["v2node"])

    def test_exceptions_never_escape(self):
        failing = FakeController("systemd", RuntimeError("dbus down"))

        result = ServiceRestarter("v2node", [failing, NullController()]).restart()

        self.assertFalse(result.success)
        self.assertIn("systemctl restart v2node", result.manual_hint("v2node"))


class ControllerTests(unittest.TestCase):
    @patch("v2node_manager.service.subprocess.run", return_value=_completed(0))
    def test_systemd_restart_command(self, mock_run):
        controller = SystemdController(use_sudo="never")

        self.assertTrue(controller.restart("v2node"))
        self.assertEqual(mock_run.call_args[0][0], ["systemctl", "restart", "v2node"])

    @patch("v2node_manager.service.subprocess.run", return_value=_completed(0))
    def test_sudo_prefix_when_forced(self, mock_run):
        controller = SysVInitController(use_sudo="always")

        controller.restart("v2node")

        self.assertEqual(mock_run.call_args[0][0], ["sudo", "service", "v2node", "restart"])

    @patch("v2node_manager.service.subprocess.run", return_value=_completed(1))
    def test_non_zero_exit_is_failure(self, mock_run):
        self.assertFalse(SysVInitController(use_sudo="never").restart("v2node"))

    @patch("v2node_manager.service.subprocess.run", side_effect=subprocess.TimeoutExpired(["systemctl"], 1))
    def test_timeout_is_failure(self, mock_run):
        self.assertFalse(SystemdController(use_sudo="never", timeout=1).restart("v2node"))

    @patch("v2node_manager.service.subprocess.run", side_effect=FileNotFoundError("systemctl"))
    def test_missing_binary_is_failure(self, mock_run):
        self.assertFalse(SystemdController(use_sudo="never").restart("v2node"))

    @patch("v2node_manager.service.subprocess.run", return_value=_completed(0, stdout="nginx.service loaded\n"))
    @patch("v2node_manager.service.shutil.which", return_value="/usr/bin/systemctl")
    def test_systemd_unavailable_when_unit_not_listed(self, mock_which, mock_run):
        self.assertFalse(SystemdController(use_sudo="never").available("v2node"))


class DetectControllersTests(unittest.TestCase):
    @patch("v2node_manager.service.shutil.which", return_value=None)
    def test_no_supervisor_gives_null_controller(self, mock_which):
        controllers = detect_controllers("v2node", use_sudo="never")

        self.assertEqual([controller.name for controller in controllers], ["none"])

    @patch("v2node_manager.service.subprocess.run", return_value=_completed(0, stdout="v2node.service loaded active\n"))
    @patch("v2node_manager.service.shutil.which", return_value="/usr/bin/tool")
    def test_systemd_preferred_over_sysvinit(self, mock_which, mock_run):
        controllers = detect_controllers("v2node", use_sudo="never")

        self.assertEqual([controller.name for controller in controllers], ["systemd", "sysvinit"])


if __name__ == "__main__":
    unittest.main()
