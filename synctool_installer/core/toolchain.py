"""
Toolchain discovery — versions of the build and strip tools.

Only used when a receipt is requested, so a plain run executes nothing
besides the three pipeline commands.
"""
import logging
import platform
from pathlib import Path

from synctool_installer.core.process import run_quiet
from synctool_installer.policy.profile import BuildProfile
from synctool_installer.receipt import ToolchainIdentity

logger = logging.getLogger(__name__)


def _os_release() -> str:
    try:
        for line in Path("/etc/os-release").read_text().splitlines():
            if line.startswith("PRETTY_NAME="):
                return line.split("=", 1)[1].strip('"')
    except OSError:
        pass
    return "unknown"


def capture_toolchain(profile: BuildProfile) -> ToolchainIdentity:
    """Capture the toolchain identity for *profile*."""
    identity = ToolchainIdentity(
        toolchain_version=run_quiet([profile.toolchain, "--version"]),
        rustc_version=run_quiet(["rustc", "--version"]),
        strip_version=run_quiet([profile.strip_program, "--version"]),
        os_release=_os_release(),
        kernel=platform.release() or "unknown",
        arch=platform.machine() or "unknown",
    )
    logger.debug(f"Toolchain: {identity.toolchain_version}, strip: {identity.strip_version}")
    return identity
