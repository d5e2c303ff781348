import os
import platform
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from rappimage.bundle.desktop import SVG_CONVERTERS
from rappimage.bundle.launcher import RELOCATED_R_HOME_DIR
from rappimage.bundle.layout import AppDirLayout, validate_for_packaging
from rappimage.config import BuildConfig
from rappimage.deps.check import detect_package_manager
from rappimage.errors import PackagingError
from rappimage.toolchain.fetch import TOOL_URLS, tool_path
from rappimage.utils.fs import human_size


@dataclass(frozen=True)
class StatusItem:
    label: str
    path: Path
    present: bool
    size: Optional[str] = None


def _item(label: str, path: Path) -> StatusItem:
    if path.is_file():
        return StatusItem(label, path, True, human_size(path.stat().st_size))
    return StatusItem(label, path, path.exists())


def collect_status(config: BuildConfig) -> List[StatusItem]:
    items = [_item("AppImage", config.artifact_path)]

    for name in TOOL_URLS:
        items.append(_item(name, tool_path(name, config.arch, config.tools_dir)))

    items.extend(
        [
            _item("R source tarball", config.source_archive),
            _item("R logo", config.logo_path),
            _item("R source tree", config.source_dir),
        ]
    )
    return items


def host_info(config: BuildConfig) -> Dict[str, str]:
    converters = [c.executable for c in SVG_CONVERTERS if shutil.which(c.executable)]
    return {
        "Machine": platform.machine(),
        "Target architecture": config.arch.value,
        "Package manager": detect_package_manager() or "unsupported",
        "SVG converters": ", ".join(converters) or "none",
    }


def appdir_problems(config: BuildConfig) -> List[str]:
    """Inspect an assembled AppDir without packaging it."""

    layout = AppDirLayout(config.appdir)
    try:
        validate_for_packaging(layout)
    except PackagingError as exc:
        return [str(exc)]

    problems = []
    if layout.apprun.is_symlink() or not os.access(layout.apprun, os.X_OK):
        problems.append(f"AppRun is not an executable script: {layout.apprun}")

    wrapper = layout.r_home / "bin" / "R"
    if not wrapper.is_file() or RELOCATED_R_HOME_DIR not in wrapper.read_text():
        problems.append(f"R home wrapper is not relocatable: {wrapper}")

    if not layout.rprofile_site.is_file():
        problems.append(f"Startup profile missing: {layout.rprofile_site}")

    return problems


def _tree_size(path: Path) -> int:
    if path.is_symlink() or not path.is_dir():
        return path.lstat().st_size
    return sum(
        entry.lstat().st_size
        for entry in path.rglob("*")
        if entry.is_symlink() or not entry.is_dir()
    )


def disk_usage(build_root: Path) -> List[Tuple[Path, int]]:
    if not build_root.is_dir():
        return []
    entries = [(path, _tree_size(path)) for path in build_root.iterdir()]
    return sorted(entries, key=lambda entry: entry[1], reverse=True)
