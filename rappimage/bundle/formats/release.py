import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional

from rappimage.config import BuildConfig
from rappimage.errors import PackagingError
from rappimage.utils.fs import copy_file, ensure_dir, remove_file, write_text


def release_archive_name(config: BuildConfig) -> str:
    return (
        f"R-{config.r_version}-{config.arch.value}-{config.mode.value}"
        "-AppImage-release.tar.gz"
    )


def render_version_info(config: BuildConfig, built_on: Optional[datetime] = None) -> str:
    built_on = built_on or datetime.now()
    packages = " ".join(config.packages) if config.packages else "none (base R only)"

    return "\n".join(
        [
            f"R AppImage {config.r_version} for {config.arch.value} ({config.mode.value})",
            f"Built on: {built_on:%Y-%m-%d %H:%M:%S}",
            f"Architecture: {config.arch.value}",
            f"Mode: {config.mode.value}",
            f"Packages: {packages}",
            "Package installation: Disabled",
            "",
        ]
    )


def create_release(
    config: BuildConfig,
    artifact: Path,
    *,
    release_dir: Path,
) -> Path:
    """Bundle the artifact and ``VERSION.txt`` into a release tarball."""

    if not artifact.is_file():
        raise PackagingError(
            f"AppImage not found: {artifact}. Run 'rappimage build' first"
        )

    ensure_dir(release_dir)
    copy_file(artifact, release_dir / artifact.name)
    write_text(release_dir / "VERSION.txt", render_version_info(config))

    archive_name = release_archive_name(config)
    remove_file(release_dir / archive_name)

    try:
        archive_path = shutil.make_archive(
            base_name=str(release_dir / archive_name)[: -len(".tar.gz")],
            format="gztar",
            root_dir=release_dir,
            base_dir=".",
        )
    except (OSError, shutil.Error) as exc:
        raise PackagingError(
            f"Failed to create release archive: {release_dir / archive_name}"
        ) from exc

    return Path(archive_path)
