import logging
from pathlib import Path

from rappimage.config import Arch
from rappimage.errors import DownloadError
from rappimage.utils.download import download
from rappimage.utils.fs import ensure_dir, make_executable

logger = logging.getLogger(__name__)


# Versionless "continuous" channels. Nothing is pinned or checksummed.
TOOL_URLS = {
    "appimagetool": (
        "https://github.com/AppImage/AppImageKit/releases/download/continuous/"
        "appimagetool-{arch}.AppImage"
    ),
    "linuxdeploy": (
        "https://github.com/linuxdeploy/linuxdeploy/releases/download/continuous/"
        "linuxdeploy-{arch}.AppImage"
    ),
}


def tool_url(name: str, arch: Arch) -> str:
    try:
        template = TOOL_URLS[name]
    except KeyError as exc:
        raise DownloadError(f"Unknown helper tool: {name}") from exc
    return template.format(arch=arch.value)


def tool_path(name: str, arch: Arch, cache_dir: Path) -> Path:
    return cache_dir / f"{name}-{arch.value}.AppImage"


def fetch_tool(name: str, *, arch: Arch, cache_dir: Path) -> Path:
    """Return the cached helper executable, downloading it on first use."""

    target = tool_path(name, arch, cache_dir)
    url = tool_url(name, arch)

    if target.is_file():
        logger.info("%s already cached at %s", name, target)
        return target

    ensure_dir(cache_dir)
    download(url, target)
    make_executable(target)

    logger.info("%s ready for %s", name, arch.value)
    return target
