import logging
from pathlib import Path
from typing import List, Sequence

from rappimage.bundle.layout import AppDirLayout
from rappimage.config import BuildConfig
from rappimage.errors import BundleError
from rappimage.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)


def install_expression(packages: Sequence[str], library: Path, repos: str) -> str:
    vector = ", ".join(f'"{name}"' for name in packages)
    return (
        f'install.packages(c({vector}), lib = "{library}", '
        f'repos = "{repos}", dependencies = c("Depends", "Imports", "LinkingTo"))'
    )


def missing_packages(library: Path, packages: Sequence[str]) -> List[str]:
    return [
        name for name in packages
        if not (library / name / "DESCRIPTION").is_file()
    ]


def preinstall_packages(
    config: BuildConfig,
    layout: AppDirLayout,
    *,
    repos: str = "https://cloud.r-project.org",
) -> List[str]:
    """Install the configured packages into the bundled library.

    Runs before ``Rprofile.site`` is written, so the bundled R still has
    its stock package functions.
    """

    if config.is_minimal:
        return []

    rscript = layout.r_home / "bin" / "Rscript"
    wrapper = layout.r_home / "bin" / "R"
    for path in (rscript, wrapper):
        if not path.is_file():
            raise BundleError(f"Bundled R not found: {path}")

    library = layout.r_library_dir
    logger.info("Installing R packages: %s", ", ".join(config.packages))

    env = {
        # Rscript hands off to $RHOME/bin/R, which derives R_HOME itself.
        "RHOME": str(layout.r_home),
        "R_LIBS": str(library),
        "R_LIBS_USER": str(library),
        "LD_LIBRARY_PATH": str(layout.lib_dir),
    }

    try:
        run_command(
            [
                str(rscript),
                "--vanilla",
                "-e",
                install_expression(config.packages, library, repos),
            ],
            env=env,
            capture_output=False,
        )
    except SubprocessError as exc:
        raise BundleError(f"Package installation failed:\n{exc}") from exc

    missing = missing_packages(library, config.packages)
    if missing:
        raise BundleError(
            "Packages were not installed into the bundle: " + ", ".join(missing)
        )

    logger.info("Installed %d R packages", len(config.packages))
    return list(config.packages)
