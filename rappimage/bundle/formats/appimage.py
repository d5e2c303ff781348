import logging
from pathlib import Path
from typing import Optional

from rappimage.bundle.layout import AppDirLayout, validate_for_packaging
from rappimage.config import BuildConfig
from rappimage.errors import PackagingError
from rappimage.utils.fs import ensure_dir, human_size, make_executable, remove_file
from rappimage.utils.subprocess import SubprocessError, combined_output, run_command

logger = logging.getLogger(__name__)


def build_appimage(
    config: BuildConfig,
    layout: AppDirLayout,
    *,
    appimagetool: Path,
) -> Path:
    """Wrap the AppDir into the final self-executing artifact."""

    validate_for_packaging(layout)

    artifact = config.artifact_path
    ensure_dir(artifact.parent)

    if remove_file(artifact):
        logger.info("Removed previous artifact %s", artifact.name)

    logger.info("Building AppImage for %s", config.arch.value)
    try:
        run_command(
            [str(appimagetool), str(layout.root), str(artifact)],
            cwd=config.build_root,
            env={"ARCH": config.arch.value},
            capture_output=False,
        )
    except SubprocessError as exc:
        raise PackagingError(f"appimagetool failed:\n{exc}") from exc

    if not artifact.is_file():
        raise PackagingError(f"Failed to create AppImage: {artifact}")

    make_executable(artifact)
    logger.info(
        "AppImage created: %s (%s)",
        artifact,
        human_size(artifact.stat().st_size),
    )
    return artifact


def smoke_test_appimage(artifact: Path) -> Optional[str]:
    """Run ``<artifact> --version``; a failure is reported, never raised."""

    try:
        result = run_command([str(artifact), "--version"], check=False)
    except SubprocessError as exc:
        logger.warning("AppImage test failed, but file was created: %s", exc)
        return None

    output = combined_output(result).strip()
    if result.returncode != 0:
        logger.warning(
            "AppImage test failed, but file was created (exit code %d)",
            result.returncode,
        )
        logger.info("Try running manually: %s --version", artifact)
        return None

    first_line = output.splitlines()[0] if output else ""
    logger.info("AppImage test passed: %s", first_line)
    return first_line


def verify_package_lock(artifact: Path) -> bool:
    """Check that ``install.packages()`` is refused inside the artifact."""

    result = run_command(
        [str(artifact), "--slave", "-e", "install.packages('nonexistent')"],
        check=False,
    )
    output = combined_output(result)
    logger.debug("install.packages() output:\n%s", output.strip())

    locked = result.returncode != 0 and "disabled" in output.lower()
    if not locked:
        logger.warning("install.packages() was not blocked in %s", artifact.name)
    return locked
