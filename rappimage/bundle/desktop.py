"""Desktop entry, icon and AppStream metadata for the AppDir."""

import logging
import shutil
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence
from xml.sax.saxutils import escape

from rappimage.bundle.layout import APP_NAME, APPSTREAM_ID, ICON_SIZE, AppDirLayout
from rappimage.config import BuildConfig, BuildMode
from rappimage.errors import BundleError, IconError
from rappimage.utils.download import download
from rappimage.utils.fs import copy_file, ensure_dir, write_text
from rappimage.utils.subprocess import SubprocessError, run_command

logger = logging.getLogger(__name__)


LOGO_URL = "https://www.r-project.org/logo/Rlogo.svg"


@dataclass(frozen=True)
class SvgConverter:
    label: str
    executable: str
    build_command: Callable[[str, Path, Path, int], List[str]]

    def command(self, executable: str, svg: Path, png: Path, size: int) -> List[str]:
        return self.build_command(executable, svg, png, size)


SVG_CONVERTERS = (
    SvgConverter(
        "ImageMagick",
        "convert",
        lambda exe, svg, png, size: [
            exe, "-background", "transparent", str(svg),
            "-resize", f"{size}x{size}", str(png),
        ],
    ),
    SvgConverter(
        "rsvg-convert",
        "rsvg-convert",
        lambda exe, svg, png, size: [
            exe, "-w", str(size), "-h", str(size), "-f", "png", str(svg), "-o", str(png),
        ],
    ),
    SvgConverter(
        "Inkscape",
        "inkscape",
        lambda exe, svg, png, size: [
            exe, "--export-type=png", f"--export-filename={png}",
            f"--export-width={size}", f"--export-height={size}", str(svg),
        ],
    ),
)


def render_desktop_entry(
    mode: BuildMode,
    *,
    name: str = APP_NAME,
    exec_name: str = APP_NAME,
) -> str:
    if mode is BuildMode.MINIMAL:
        comment = "R Statistical Computing Environment"
    else:
        comment = "R Statistical Computing Environment with pre-installed packages"

    return "\n".join(
        [
            "[Desktop Entry]",
            "Version=1.0",
            "Type=Application",
            f"Name={name}",
            f"Comment={comment}",
            f"Exec={exec_name}",
            f"Icon={APP_NAME}",
            "Categories=Science;Math;",
            "Terminal=true",
            "StartupNotify=true",
            "",
        ]
    )


def write_desktop_entry(layout: AppDirLayout, mode: BuildMode) -> Path:
    write_text(layout.desktop_file, render_desktop_entry(mode))
    copy_file(layout.desktop_file, layout.root_desktop_file)

    validator = shutil.which("desktop-file-validate")
    if validator is None:
        logger.warning(
            "desktop-file-validate not found, desktop file created but not validated"
        )
        return layout.desktop_file

    try:
        run_command([validator, str(layout.desktop_file)])
    except SubprocessError as exc:
        raise BundleError(f"Desktop file failed validation:\n{exc}") from exc

    logger.info("Desktop file created and validated")
    return layout.desktop_file


def render_metainfo(config: BuildConfig) -> str:
    if config.is_minimal:
        summary = "Portable R statistical computing environment"
        details = (
            "A self-contained build of R that runs on most Linux distributions "
            "without installation. Package installation is disabled."
        )
    else:
        summary = "Portable R environment with pre-installed packages"
        details = (
            "A self-contained build of R that runs on most Linux distributions "
            "without installation. It ships with these packages: "
            + ", ".join(config.packages)
            + ". Package installation is disabled."
        )

    return textwrap.dedent(
        """\
        <?xml version="1.0" encoding="UTF-8"?>
        <component type="desktop-application">
          <id>{app_id}</id>
          <metadata_license>CC0-1.0</metadata_license>
          <project_license>GPL-2.0-or-later</project_license>
          <name>{name}</name>
          <summary>{summary}</summary>
          <description>
            <p>{details}</p>
          </description>
          <launchable type="desktop-id">{name}.desktop</launchable>
          <url type="homepage">https://www.r-project.org/</url>
          <categories>
            <category>Science</category>
            <category>Math</category>
          </categories>
          <provides>
            <binary>{name}</binary>
          </provides>
          <releases>
            <release version="{version}"/>
          </releases>
        </component>
        """
    ).format(
        app_id=APPSTREAM_ID,
        name=APP_NAME,
        summary=escape(summary),
        details=escape(details),
        version=escape(config.r_version),
    )


def write_metainfo(layout: AppDirLayout, config: BuildConfig) -> Path:
    write_text(layout.metainfo_file, render_metainfo(config))

    validator = shutil.which("appstream-util")
    if validator is None:
        logger.debug("appstream-util not found, metadata not validated")
        return layout.metainfo_file

    result = run_command(
        [validator, "validate-relax", "--nonet", str(layout.metainfo_file)],
        check=False,
    )
    if result.returncode != 0:
        logger.warning(
            "AppStream metadata did not validate: %s",
            (result.stdout or result.stderr or "").strip(),
        )
    return layout.metainfo_file


def fetch_logo(config: BuildConfig) -> Path:
    if config.logo_path.is_file():
        logger.info("R logo already downloaded")
        return config.logo_path
    return download(LOGO_URL, config.logo_path)


def available_converters(
    converters: Sequence[SvgConverter] = SVG_CONVERTERS,
) -> List[tuple]:
    found = []
    for converter in converters:
        executable = shutil.which(converter.executable)
        if executable:
            found.append((converter, executable))
    return found


def rasterize_icon(
    svg: Path,
    png: Path,
    *,
    size: int = ICON_SIZE,
    converters: Sequence[SvgConverter] = SVG_CONVERTERS,
) -> Path:
    installed = available_converters(converters)
    if not installed:
        raise IconError(
            "No SVG converter found. Install one of: imagemagick, "
            "librsvg2-bin (rsvg-convert) or inkscape"
        )

    ensure_dir(png.parent)
    failures: List[str] = []

    for converter, executable in installed:
        logger.info("Converting SVG to PNG using %s", converter.label)
        try:
            run_command(converter.command(executable, svg, png, size))
        except SubprocessError as exc:
            logger.warning("%s failed to convert the icon", converter.label)
            failures.append(f"{converter.label}: {exc}")
            continue

        if png.is_file():
            return png
        failures.append(f"{converter.label}: no output written to {png}")

    raise IconError(
        "Failed to convert SVG to PNG:\n" + "\n".join(failures)
    )


def install_icon(layout: AppDirLayout, png: Path) -> Path:
    if png != layout.icon_file:
        copy_file(png, layout.icon_file)
    copy_file(layout.icon_file, layout.root_icon_file)
    logger.info("Icon copied to AppDir root")
    return layout.root_icon_file


def write_diricon(layout: AppDirLayout) -> Path:
    if not layout.root_icon_file.is_file():
        raise IconError(f"Root icon not found at {layout.root_icon_file}")
    return copy_file(layout.root_icon_file, layout.diricon)


def create_desktop_metadata(
    config: BuildConfig,
    layout: AppDirLayout,
    *,
    logo: Optional[Path] = None,
) -> None:
    write_desktop_entry(layout, config.mode)

    svg = logo or fetch_logo(config)
    rasterize_icon(svg, layout.icon_file)
    install_icon(layout, layout.icon_file)
    write_diricon(layout)

    write_metainfo(layout, config)
