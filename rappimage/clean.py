import logging
from enum import Enum
from pathlib import Path
from typing import List

from rappimage.config import BuildConfig
from rappimage.utils.fs import remove_dir, remove_file

logger = logging.getLogger(__name__)


class CleanScope(str, Enum):
    ARTIFACTS = "artifacts"
    DOWNLOADS = "downloads"
    ALL = "all"


def clean_targets(config: BuildConfig, scope: CleanScope) -> List[Path]:
    if scope is CleanScope.ALL:
        return [config.build_root]

    if scope is CleanScope.ARTIFACTS:
        artifacts = sorted(config.build_root.glob(f"R-{config.r_version}-*.AppImage"))
        return [config.appdir, config.install_root, *artifacts]

    return [
        config.source_dir,
        config.source_archive,
        config.tools_dir,
        config.logo_path,
        config.appdir,
    ]


def clean_build(config: BuildConfig, scope: CleanScope) -> List[Path]:
    """Remove build outputs for ``scope``; returns the paths actually removed."""

    removed: List[Path] = []
    for path in clean_targets(config, scope):
        if not (path.exists() or path.is_symlink()):
            continue
        if path.is_dir() and not path.is_symlink():
            remove_dir(path)
        else:
            remove_file(path)
        logger.debug("Removed %s", path)
        removed.append(path)
    return removed
