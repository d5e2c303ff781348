import logging
import signal
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, Optional

from rappimage.bundle.assembler import assemble_appdir
from rappimage.bundle.formats.appimage import build_appimage, smoke_test_appimage
from rappimage.config import BuildConfig
from rappimage.deps.check import check_dependencies
from rappimage.source.build import build_r
from rappimage.toolchain.fetch import fetch_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    artifact: Path
    version_line: Optional[str]


@contextmanager
def terminate_as_interrupt() -> Iterator[None]:
    """Deliver SIGTERM as ``KeyboardInterrupt`` while the block runs."""

    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _raise_interrupt(signum, frame):
        raise KeyboardInterrupt

    previous = signal.signal(signal.SIGTERM, _raise_interrupt)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


def run_pipeline(
    config: BuildConfig,
    *,
    progress: Callable[[str], None] = logger.info,
) -> PipelineResult:
    progress("Checking build dependencies")
    check_dependencies()

    progress("Fetching AppImage tooling")
    appimagetool = fetch_tool("appimagetool", arch=config.arch, cache_dir=config.tools_dir)
    linuxdeploy = None
    if config.use_linuxdeploy:
        linuxdeploy = fetch_tool("linuxdeploy", arch=config.arch, cache_dir=config.tools_dir)

    progress(f"Building R {config.r_version} from source")
    tree = build_r(config)

    progress("Assembling AppDir")
    layout = assemble_appdir(config=config, tree=tree, linuxdeploy=linuxdeploy)

    progress("Packaging AppImage")
    artifact = build_appimage(config, layout, appimagetool=appimagetool)

    progress("Testing AppImage")
    version_line = smoke_test_appimage(artifact)

    return PipelineResult(artifact=artifact, version_line=version_line)
