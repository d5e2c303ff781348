import logging
import shutil
from typing import Iterable, List, Optional

from rappimage.errors import DependencyError

logger = logging.getLogger(__name__)


REQUIRED_TOOLS = (
    "gcc",
    "g++",
    "gfortran",
    "make",
    "ldd",
)

MANUAL_INSTALL_HINTS = {
    "apt-get": (
        "sudo apt-get install build-essential gfortran file "
        "desktop-file-utils libx11-dev libxt-dev"
    ),
    "dnf": (
        "sudo dnf install gcc-gfortran file desktop-file-utils "
        "libX11-devel libXt-devel"
    ),
    "yum": (
        "sudo yum install gcc-gfortran file desktop-file-utils "
        "libX11-devel libXt-devel"
    ),
}


def detect_package_manager() -> Optional[str]:
    if shutil.which("apt-get"):
        return "apt-get"
    if shutil.which("dnf") or shutil.which("dnf5"):
        return "dnf"
    if shutil.which("yum"):
        return "yum"
    return None


def find_missing_tools(tools: Iterable[str]) -> List[str]:
    return [tool for tool in tools if shutil.which(tool) is None]


def check_dependencies(tools: Iterable[str] = REQUIRED_TOOLS) -> None:
    tools = list(tools)
    logger.info("Checking build dependencies: %s", ", ".join(tools))

    missing = find_missing_tools(tools)
    if not missing:
        logger.info("All build dependencies are available")
        return

    raise DependencyError(_format_missing(missing, detect_package_manager()))


def _format_missing(missing: List[str], manager: Optional[str]) -> str:
    lines = [
        f"Missing dependencies: {' '.join(missing)}",
        "Install them with: rappimage deps",
    ]

    if manager is not None:
        lines.append(f"Or manually: {MANUAL_INSTALL_HINTS[manager]}")
    else:
        lines.append("Or manually, depending on your distribution:")
        for name, hint in MANUAL_INSTALL_HINTS.items():
            lines.append(f"  {name}: {hint}")

    return "\n".join(lines)
