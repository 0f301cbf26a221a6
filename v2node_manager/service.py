import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)


def _sudo_prefix(use_sudo: str) -> List[str]:
    """Return ``["sudo"]`` when commands need elevation under the given policy."""
    if use_sudo == "never":
        return []
    if use_sudo == "always":
        return ["sudo"]
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return []
    return ["sudo"] if shutil.which("sudo") else []


class ServiceController:
    """Restarts a service through one process-supervision mechanism."""

    name = "none"

    def __init__(self, use_sudo: str = "auto", timeout: float = 60.0):
        self.use_sudo = use_sudo
        self.timeout = timeout

    def available(self, service: str) -> bool:
        raise NotImplementedError

    def restart(self, service: str) -> bool:
        raise NotImplementedError

    def _run(self, args: Sequence[str], elevate: bool = True) -> Optional[subprocess.CompletedProcess]:
        cmd = (_sudo_prefix(self.use_sudo) if elevate else []) + list(args)
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            logger.debug("Command timed out after %s seconds: %s", self.timeout, " ".join(cmd))
        except OSError as exc:
            logger.debug("Command failed to start: %s (%s)", " ".join(cmd), exc)
        return None


class SystemdController(ServiceController):
    name = "systemd"

    def available(self, service: str) -> bool:
        if not shutil.which("systemctl"):
            return False
        result = self._run(["systemctl", "list-units", "--type=service", "--all"], elevate=False)
        return bool(result and result.returncode == 0 and service in result.stdout)

    def restart(self, service: str) -> bool:
        result = self._run(["systemctl", "restart", service])
        return bool(result and result.returncode == 0)


class SysVInitController(ServiceController):
    name = "sysvinit"

    def available(self, service: str) -> bool:
        return shutil.which("service") is not None

    def restart(self, service: str) -> bool:
        result = self._run(["service", service, "restart"])
        return bool(result and result.returncode == 0)


class NullController(ServiceController):
    """Used when no supervision mechanism was found; never restarts anything."""

    def available(self, service: str) -> bool:
        return True

    def restart(self, service: str) -> bool:
        return False


CONTROLLER_TYPES = (SystemdController, SysVInitController)


def detect_controllers(service: str, use_sudo: str = "auto", timeout: float = 60.0) -> List[ServiceController]:
    """Probe the host and return the usable controllers in preference order."""
    controllers = []
    for controller_type in CONTROLLER_TYPES:
        controller = controller_type(use_sudo=use_sudo, timeout=timeout)
        if controller.available(service):
            controllers.append(controller)
    if not controllers:
        controllers.append(NullController(use_sudo=use_sudo, timeout=timeout))
    logger.debug("Service controllers for %s: %s", service, [controller.name for controller in controllers])
    return controllers


@dataclass
class RestartResult:
    success: bool
    controller: Optional[str] = None

    def manual_hint(self, service: str) -> str:
        return f"systemctl restart {service} or service {service} restart"


class ServiceRestarter:
    """Best-effort restart: tries each controller once, in order, and never raises."""

    def __init__(self, service: str, controllers: Sequence[ServiceController]):
        self.service = service
        self.controllers = list(controllers)

    def restart(self) -> RestartResult:
        for controller in self.controllers:
            try:
                if controller.restart(self.service):
                    logger.debug("Restarted %s via %s", self.service, controller.name)
                    return RestartResult(success=True, controller=controller.name)
            except Exception as exc:
                logger.debug("Restart via %s raised: %s", controller.name, exc)
            logger.debug("Restart via %s failed", controller.name)
        return RestartResult(success=False)
