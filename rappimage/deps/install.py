import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from rappimage.config import Arch
from rappimage.errors import DependencyError
from rappimage.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)


APT_PACKAGES = [
    "build-essential",
    "gfortran",
    "curl",
    "wget",
    "file",
    "desktop-file-utils",
    "libreadline-dev",
    "libcurl4-openssl-dev",
    "libssl-dev",
    "libxml2-dev",
    "libcairo2-dev",
    "libpng-dev",
    "libjpeg-dev",
    "libtiff5-dev",
    "libicu-dev",
    "imagemagick",
    "librsvg2-bin",
    "libx11-dev",
    "libxt-dev",
    "libxext-dev",
    "libxmu-dev",
    "libxmuu-dev",
    "libbz2-dev",
    "liblzma-dev",
    "libpcre3-dev",
    "librsvg2-dev",
    "libudunits2-dev",
    "libharfbuzz-dev",
    "libfribidi-dev",
    "libfuse2t64",
    "libgdal-dev",
    "gdal-bin",
    "zlib1g-dev",
]

APT_AARCH64_PACKAGES = [
    "gcc-aarch64-linux-gnu",
    "g++-aarch64-linux-gnu",
]

DNF_PACKAGES = [
    "gcc-gfortran",
    "curl",
    "wget",
    "file",
    "desktop-file-utils",
    "readline-devel",
    "libcurl-devel",
    "openssl-devel",
    "libxml2-devel",
    "cairo-devel",
    "libpng-devel",
    "libjpeg-turbo-devel",
    "libtiff-devel",
    "libicu-devel",
    "ImageMagick",
    "librsvg2-tools",
    "inkscape",
    "libX11-devel",
    "libXt-devel",
    "libXext-devel",
    "libXmu-devel",
    "bzip2-devel",
    "harfbuzz-devel",
    "fribidi-devel",
    "librsvg2-devel",
    "udunits2-devel",
    "gdal",
    "gdal-devel",
    "fuse-libs",
    "xz-devel",
    "pcre-devel",
    "zlib-devel",
]

YUM_PACKAGES = [
    name
    for name in DNF_PACKAGES
    if name not in {"inkscape", "gdal", "gdal-devel", "fuse-libs"}
]

SUPPORTED_MANAGERS = ("apt-get", "dnf", "yum")


@dataclass(frozen=True)
class InstallStep:
    command: List[str]
    tolerated: bool = False


def install_commands(manager: str, arch: Arch) -> List[InstallStep]:
    if manager == "apt-get":
        steps = [
            InstallStep(["sudo", "apt-get", "update"]),
            InstallStep(["sudo", "apt-get", "install", "-y", *APT_PACKAGES]),
        ]
        if arch is Arch.AARCH64:
            steps.append(
                InstallStep(
                    ["sudo", "apt-get", "install", "-y", *APT_AARCH64_PACKAGES],
                    tolerated=True,
                )
            )
        return steps

    if manager == "dnf":
        dnf = "dnf5" if shutil.which("dnf5") else "dnf"
        if dnf == "dnf5":
            group = ["sudo", "dnf", "group", "install", "-y", "development-tools"]
        else:
            group = ["sudo", "dnf", "groupinstall", "-y", "Development Tools"]
        return [
            InstallStep(group),
            InstallStep(["sudo", "dnf", "install", "-y", *DNF_PACKAGES]),
        ]

    if manager == "yum":
        return [
            InstallStep(["sudo", "yum", "groupinstall", "-y", "Development Tools"]),
            InstallStep(["sudo", "yum", "install", "-y", *YUM_PACKAGES]),
            InstallStep(
                ["sudo", "yum", "--enablerepo=epel", "-y", "install", "fuse-sshfs"],
                tolerated=True,
            ),
        ]

    raise DependencyError(
        f"Unsupported package manager: {manager} "
        f"(supported: {', '.join(SUPPORTED_MANAGERS)})"
    )


def install_system_dependencies(
    *,
    manager: Optional[str],
    arch: Arch,
    dry_run: bool = False,
    cwd: Optional[Path] = None,
) -> List[InstallStep]:

    if manager is None:
        raise DependencyError(
            "No supported package manager found "
            "(supported: apt-get, dnf, yum)"
        )

    steps = install_commands(manager, arch)

    for step in steps:
        logger.info("Running: %s", " ".join(step.command))
        if dry_run:
            continue
        _run_step(step, cwd)

    return steps


def _run_step(step: InstallStep, cwd: Optional[Path]) -> None:
    try:
        run_command(step.command, cwd=cwd, capture_output=False)
    except SubprocessError as exc:
        if step.tolerated:
            logger.warning("Optional step failed, continuing: %s", exc)
            return
        raise DependencyError(
            f"Failed to install system dependencies: {exc}"
        ) from exc
