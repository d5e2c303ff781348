import logging
import re
import textwrap
from pathlib import Path

from rappimage.bundle.layout import AppDirLayout
from rappimage.config import BuildConfig
from rappimage.errors import BundleError
from rappimage.utils.fs import make_executable, remove_file, write_text

logger = logging.getLogger(__name__)


R_HOME_DIR_LINE = re.compile(r"^R_HOME_DIR=(?P<path>\S+)[ \t]*$", re.MULTILINE)
RELOCATED_R_HOME_DIR = 'R_HOME_DIR="$(cd "$(dirname "$(readlink -f "$0")")/.." && pwd)"'
R_HOME_SUBDIR_VARIABLES = ("R_SHARE_DIR", "R_INCLUDE_DIR", "R_DOC_DIR")


def render_apprun(config: BuildConfig) -> str:
    return textwrap.dedent(
        """\
        #!/bin/bash
        # AppRun for R {version} ({arch}, {mode} build)

        HERE="$(dirname "$(readlink -f "$0")")"

        unset R_HOME RHOME R_LIBS R_LIBS_USER R_LIBS_SITE R_SHARE_DIR R_INCLUDE_DIR R_DOC_DIR

        export R_HOME="${{HERE}}/usr/lib/R"
        export RHOME="${{R_HOME}}"

        export PATH="${{R_HOME}}/bin:${{HERE}}/usr/bin:${{PATH}}"
        export LD_LIBRARY_PATH="${{HERE}}/usr/lib${{LD_LIBRARY_PATH:+:${{LD_LIBRARY_PATH}}}}"

        export R_SHARE_DIR="${{R_HOME}}/share"
        export R_INCLUDE_DIR="${{R_HOME}}/include"
        export R_DOC_DIR="${{R_HOME}}/doc"

        # The bundle is read-only; only the packages baked into it are visible.
        export R_LIBS="${{R_HOME}}/library"
        export R_LIBS_USER="${{R_HOME}}/library"

        exec "${{R_HOME}}/bin/R" "$@"
        """
    ).format(
        version=config.r_version,
        arch=config.arch.value,
        mode=config.mode.value,
    )


def write_apprun(layout: AppDirLayout, config: BuildConfig) -> Path:
    # linuxdeploy may leave an AppRun symlink behind.
    if remove_file(layout.apprun):
        logger.debug("Replaced existing AppRun at %s", layout.apprun)

    write_text(layout.apprun, render_apprun(config))
    make_executable(layout.apprun)
    logger.info("AppRun script created")
    return layout.apprun


def relocate_wrapper_text(text: str) -> str:
    """Rewrite R's shell wrapper to locate R home from its own path.

    ``make install`` bakes the configured R home into ``R_HOME_DIR`` and
    the share, include and doc directories. Only those top-level
    assignments change; the rest of the script is kept as installed.
    """

    match = R_HOME_DIR_LINE.search(text)
    if match is None:
        raise BundleError("R wrapper script does not assign R_HOME_DIR")

    configured = match.group("path")
    text = text[:match.start()] + RELOCATED_R_HOME_DIR + text[match.end():]

    subdirs = re.compile(
        r"^(?P<name>{names})={home}(?=/|\s|$)".format(
            names="|".join(R_HOME_SUBDIR_VARIABLES),
            home=re.escape(configured),
        ),
        re.MULTILINE,
    )
    return subdirs.sub(lambda m: m.group("name") + "=${R_HOME_DIR}", text)


def relocate_r_wrapper(layout: AppDirLayout) -> Path:
    wrapper = layout.r_home / "bin" / "R"
    if not wrapper.is_file():
        raise BundleError(f"R wrapper script not found: {wrapper}")

    write_text(wrapper, relocate_wrapper_text(wrapper.read_text()))
    make_executable(wrapper)
    logger.info("R home wrapper made relocatable")
    return wrapper
