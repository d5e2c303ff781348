import os
from dataclasses import dataclass
from pathlib import Path

from rappimage.errors import PackagingError

APP_NAME = "R"
APPSTREAM_ID = "org.r-project.R"
ICON_SIZE = 256


@dataclass(frozen=True)
class AppDirLayout:
    root: Path

    @property
    def usr_dir(self) -> Path:
        return self.root / "usr"

    @property
    def bin_dir(self) -> Path:
        return self.usr_dir / "bin"

    @property
    def lib_dir(self) -> Path:
        return self.usr_dir / "lib"

    @property
    def applications_dir(self) -> Path:
        return self.usr_dir / "share" / "applications"

    @property
    def icon_dir(self) -> Path:
        return (
            self.usr_dir
            / "share"
            / "icons"
            / "hicolor"
            / f"{ICON_SIZE}x{ICON_SIZE}"
            / "apps"
        )

    @property
    def metainfo_dir(self) -> Path:
        return self.usr_dir / "share" / "metainfo"

    @property
    def man_dir(self) -> Path:
        return self.usr_dir / "share" / "man"

    @property
    def r_home(self) -> Path:
        return self.lib_dir / "R"

    @property
    def r_etc_dir(self) -> Path:
        return self.r_home / "etc"

    @property
    def r_library_dir(self) -> Path:
        return self.r_home / "library"

    @property
    def rprofile_site(self) -> Path:
        return self.r_etc_dir / "Rprofile.site"

    @property
    def desktop_file(self) -> Path:
        return self.applications_dir / f"{APP_NAME}.desktop"

    @property
    def root_desktop_file(self) -> Path:
        return self.root / f"{APP_NAME}.desktop"

    @property
    def icon_file(self) -> Path:
        return self.icon_dir / f"{APP_NAME}.png"

    @property
    def root_icon_file(self) -> Path:
        return self.root / f"{APP_NAME}.png"

    @property
    def diricon(self) -> Path:
        return self.root / ".DirIcon"

    @property
    def metainfo_file(self) -> Path:
        return self.metainfo_dir / f"{APPSTREAM_ID}.appdata.xml"

    @property
    def apprun(self) -> Path:
        return self.root / "AppRun"

    def all_dirs(self) -> list[Path]:
        return [
            self.root,
            self.bin_dir,
            self.lib_dir,
            self.applications_dir,
            self.icon_dir,
            self.metainfo_dir,
        ]


def validate_for_packaging(layout: AppDirLayout) -> None:
    """Check the minimum the packaging tool needs before it is invoked."""

    if not layout.root.is_dir():
        raise PackagingError(f"AppDir not found: {layout.root}")

    executables = [
        path
        for path in (layout.bin_dir.iterdir() if layout.bin_dir.is_dir() else [])
        if path.is_file() and os.access(path, os.X_OK)
    ]
    if not executables:
        raise PackagingError(
            f"AppDir layout incomplete, no executable in: {layout.bin_dir}"
        )

    if not list(layout.root.glob("*.desktop")):
        raise PackagingError(
            f"AppDir layout incomplete, no desktop file at: {layout.root}"
        )

    if not layout.root_icon_file.is_file():
        raise PackagingError(
            f"AppDir layout incomplete, missing: {layout.root_icon_file}"
        )
