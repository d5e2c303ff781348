import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from rappimage.errors import BundleError
from rappimage.utils.subprocess import combined_output, run_command

logger = logging.getLogger(__name__)


# Bundled strip cannot parse .relr.dyn; libraries are still deployed.
STRIP_FAILURE_MARKER = "strip call failed"
RELR_SECTION_MARKER = ".relr.dyn"


def is_benign_linuxdeploy_failure(output: str) -> bool:
    text = output.lower()
    return STRIP_FAILURE_MARKER in text and RELR_SECTION_MARKER in text


def linuxdeploy_command(
    linuxdeploy: Path,
    *,
    appdir: Path,
    desktop_file: Path,
    icon_file: Path,
    executables: Iterable[Path],
    libraries: Iterable[Path],
) -> List[str]:
    cmd = [
        str(linuxdeploy),
        "--appdir",
        str(appdir),
        "--desktop-file",
        str(desktop_file),
        "--icon-file",
        str(icon_file),
    ]

    for executable in executables:
        cmd.extend(["--executable", str(executable)])

    for library in libraries:
        cmd.extend(["--library", str(library)])

    return cmd


def run_linuxdeploy(
    linuxdeploy: Path,
    *,
    appdir: Path,
    desktop_file: Path,
    icon_file: Path,
    executables: Iterable[Path],
    libraries: Iterable[Path],
    library_path: Iterable[Path] = (),
) -> None:
    cmd = linuxdeploy_command(
        linuxdeploy,
        appdir=appdir,
        desktop_file=desktop_file,
        icon_file=icon_file,
        executables=executables,
        libraries=libraries,
    )

    env: Optional[Dict[str, str]] = None
    search = [str(p) for p in library_path]
    if search:
        env = {"LD_LIBRARY_PATH": ":".join(search)}

    logger.info("Running linuxdeploy")
    result = run_command(cmd, env=env, check=False)
    output = combined_output(result)

    for line in output.splitlines():
        if line.strip():
            logger.debug("[linuxdeploy] %s", line.rstrip())

    if result.returncode == 0:
        logger.info("linuxdeploy completed")
        return

    if is_benign_linuxdeploy_failure(output):
        logger.warning(
            "linuxdeploy could not strip libraries with a .relr.dyn section; "
            "continuing with unstripped libraries"
        )
        return

    raise BundleError(
        f"linuxdeploy failed with exit code {result.returncode}:\n{output.strip()}"
    )
