import logging
import os
import tarfile
from pathlib import Path
from typing import Dict, List, Optional

from rappimage.config import Arch, BuildConfig
from rappimage.errors import BuildError
from rappimage.source.tree import INSTALL_PREFIX, InstallTree, discover_install_tree
from rappimage.utils.download import download
from rappimage.utils.fs import ensure_dir, remove_dir
from rappimage.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)


CONFIGURE_FLAGS = [
    "--enable-R-shlib",
    "--enable-memory-profiling",
    "--with-blas",
    "--with-lapack",
    "--with-readline",
    "--with-cairo",
    "--with-libpng",
    "--with-jpeglib",
    "--with-libtiff",
    "--with-ICU",
    "--with-x",
    "--enable-java=no",
]

MARCH_FLAGS = {
    Arch.X86_64: "-march=x86-64 -O2",
    Arch.AARCH64: "-march=armv8-a -O2",
}

# aarch64 boards tend to have many cores and little memory.
AARCH64_MAX_JOBS = 2


def fetch_source(config: BuildConfig) -> Path:
    archive = config.source_archive
    if archive.is_file():
        logger.info("R source already downloaded: %s", archive)
        return archive

    return download(config.source_url, archive)


def extract_source(config: BuildConfig) -> Path:
    source_dir = config.source_dir
    if source_dir.is_dir():
        logger.info("R source already extracted: %s", source_dir)
        return source_dir

    logger.info("Extracting %s", config.source_archive)
    try:
        with tarfile.open(config.source_archive, "r:gz") as tar:
            tar.extractall(config.build_root, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise BuildError(
            f"Failed to extract {config.source_archive}: {exc}"
        ) from exc

    if not source_dir.is_dir():
        raise BuildError(
            f"Archive did not contain the expected directory: {source_dir}"
        )
    return source_dir


def configure_args() -> List[str]:
    return [
        f"--prefix={INSTALL_PREFIX}",
        f"--libdir={INSTALL_PREFIX}/lib",
        *CONFIGURE_FLAGS,
    ]


def compiler_env(
    arch: Arch,
    base_env: Optional[Dict[str, str]] = None,
) -> Dict[str, str]:
    base = os.environ if base_env is None else base_env
    march = MARCH_FLAGS[arch]

    def _append(key: str, flags: str) -> str:
        existing = base.get(key, "").strip()
        return f"{existing} {flags}".strip()

    return {
        "CFLAGS": _append("CFLAGS", march),
        "CXXFLAGS": _append("CXXFLAGS", march),
        "FFLAGS": _append("FFLAGS", "-O2"),
    }


def job_count(arch: Arch, cpu_count: Optional[int] = None) -> int:
    jobs = cpu_count if cpu_count is not None else (os.cpu_count() or 1)
    if arch is Arch.AARCH64 and jobs > AARCH64_MAX_JOBS:
        logger.info(
            "Limiting to %d parallel jobs on aarch64 to prevent memory exhaustion",
            AARCH64_MAX_JOBS,
        )
        return AARCH64_MAX_JOBS
    return max(1, jobs)


def build_r(config: BuildConfig) -> InstallTree:
    ensure_dir(config.build_root)

    fetch_source(config)
    source_dir = extract_source(config)

    env = compiler_env(config.arch)
    jobs = job_count(config.arch)

    args = configure_args()
    logger.info("Configure command: ./configure %s", " ".join(args))
    _run_build_step(["./configure", *args], source_dir, env, "configure")

    logger.info("Compiling R with %d jobs (this can take hours on aarch64)", jobs)
    _run_build_step(["make", f"-j{jobs}"], source_dir, env, "compile")

    remove_dir(config.install_root)
    ensure_dir(config.install_root)

    logger.info("Installing R into %s", config.install_root)
    _run_build_step(
        ["make", "install", f"DESTDIR={config.install_root}"],
        source_dir,
        env,
        "install",
    )

    return discover_install_tree(config.install_root)


def _run_build_step(
    command: List[str],
    cwd: Path,
    env: Dict[str, str],
    label: str,
) -> None:
    try:
        run_command(command, cwd=cwd, env=env, capture_output=False)
    except SubprocessError as exc:
        raise BuildError(
            f"R {label} step failed; the source tree at {cwd} was left for inspection.\n{exc}"
        ) from exc
