import logging
from pathlib import Path
from typing import Optional

from rappimage.bundle.layout import APP_NAME
from rappimage.errors import PackagingError
from rappimage.utils.fs import copy_file, make_executable, write_text

logger = logging.getLogger(__name__)


INSTALLED_NAME = "R.AppImage"
DESKTOP_ENTRY_NAME = "R-AppImage.desktop"


def default_bin_dir() -> Path:
    return Path.home() / ".local" / "bin"


def default_applications_dir() -> Path:
    return Path.home() / ".local" / "share" / "applications"


def install_appimage(artifact: Path, bin_dir: Optional[Path] = None) -> Path:
    if not artifact.is_file():
        raise PackagingError(
            f"AppImage not found: {artifact}. Run 'rappimage build' first"
        )

    target = (bin_dir or default_bin_dir()) / INSTALLED_NAME
    copy_file(artifact, target)
    make_executable(target)
    logger.info("Installed %s", target)
    return target


def render_host_desktop_entry() -> str:
    return "\n".join(
        [
            "[Desktop Entry]",
            "Name=R Statistical Computing",
            "Comment=R Statistical Computing Environment - Pre-configured",
            f"Exec={INSTALLED_NAME}",
            f"Icon={APP_NAME}",
            "Type=Application",
            "Categories=Science;Math;",
            "Terminal=true",
            "StartupNotify=true",
            "",
        ]
    )


def install_desktop_entry(applications_dir: Optional[Path] = None) -> Path:
    target = (applications_dir or default_applications_dir()) / DESKTOP_ENTRY_NAME
    write_text(target, render_host_desktop_entry())
    logger.info("Desktop entry written to %s", target)
    return target
