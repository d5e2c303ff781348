import logging
import os
import shutil
import urllib.error
import urllib.request
from pathlib import Path

from rappimage.errors import DownloadError
from rappimage.utils.fs import ensure_dir, remove_file

logger = logging.getLogger(__name__)


def download(url: str, dst: Path) -> Path:
    """Fetch ``url`` into ``dst``.

    The payload is streamed into a sibling ``.part`` file and renamed only
    once complete, so an interrupted transfer never looks like a cached file.
    There is no retry and no timeout.
    """

    ensure_dir(dst.parent)
    partial = dst.with_name(dst.name + ".part")

    logger.info("Downloading %s", url)

    try:
        with urllib.request.urlopen(url) as resp, partial.open("wb") as f:
            shutil.copyfileobj(resp, f)
        os.replace(partial, dst)
    except (urllib.error.URLError, OSError) as exc:
        remove_file(partial)
        raise DownloadError(f"Failed to download {url}: {exc}") from exc

    logger.debug("Saved %s (%d bytes)", dst, dst.stat().st_size)
    return dst
