import platform
import re
from enum import Enum
from pathlib import Path
from typing import Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from rappimage.errors import ConfigError


DEFAULT_R_VERSION = "4.5.1"

DEFAULT_PACKAGES: Tuple[str, ...] = (
    "jsonlite",
    "httr",
    "ggplot2",
    "dplyr",
    "tidyr",
    "readr",
    "stringr",
    "lubridate",
    "shiny",
    "rmarkdown",
    "knitr",
    "devtools",
    "data.table",
    "plotly",
    "DT",
)

CRAN_SOURCE_URL = "https://cran.r-project.org/src/base/R-{major}/R-{version}.tar.gz"

_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+$")
_PACKAGE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9.]*[A-Za-z0-9]$")


class Arch(str, Enum):
    X86_64 = "x86_64"
    AARCH64 = "aarch64"


class BuildMode(str, Enum):
    MINIMAL = "minimal"
    WITH_PACKAGES = "with-packages"


def normalize_arch(value: str) -> Arch:
    key = str(value).strip().lower()
    if key not in _ARCH_ALIASES:
        raise ConfigError(
            f"Unsupported architecture: {value} "
            f"(supported: {', '.join(a.value for a in Arch)})"
        )
    return Arch(_ARCH_ALIASES[key])


def detect_arch() -> Arch:
    return normalize_arch(platform.machine())


class BuildConfig(BaseModel):
    arch: Arch = Field(
        ...,
        description="Target architecture of the AppImage",
    )

    r_version: str = Field(
        default=DEFAULT_R_VERSION,
        description="Version of R to download and build",
        examples=["4.5.1"],
    )

    mode: BuildMode = Field(
        default=BuildMode.MINIMAL,
        description="Whether extra R packages are baked into the bundle",
    )

    packages: Tuple[str, ...] = Field(
        default=(),
        description="R packages preinstalled in with-packages mode",
    )

    build_root: Path = Field(
        default_factory=lambda: Path.cwd() / "build",
        description="Directory holding downloads, sources and the AppDir",
    )

    use_linuxdeploy: bool = Field(
        default=True,
        description="Delegate the dependency closure to linuxdeploy",
    )

    @field_validator("arch", mode="before")
    @classmethod
    def validate_arch(cls, value) -> Arch:
        if isinstance(value, Arch):
            return value
        return normalize_arch(value)

    @field_validator("r_version")
    @classmethod
    def validate_r_version(cls, value: str) -> str:
        value = value.strip()
        if not _VERSION_RE.match(value):
            raise ConfigError(
                f"Invalid R version '{value}' (expected MAJOR.MINOR.PATCH)"
            )
        return value

    @field_validator("packages", mode="before")
    @classmethod
    def validate_packages(cls, value) -> Tuple[str, ...]:
        seen: list[str] = []
        for name in value or ():
            name = str(name).strip()
            if not _PACKAGE_RE.match(name):
                raise ConfigError(f"Invalid R package name: '{name}'")
            if name not in seen:
                seen.append(name)
        return tuple(seen)

    @model_validator(mode="after")
    def validate_mode_packages(self) -> "BuildConfig":
        if self.mode is BuildMode.MINIMAL and self.packages:
            raise ConfigError(
                "Packages can only be preinstalled in with-packages mode"
            )
        if self.mode is BuildMode.WITH_PACKAGES and not self.packages:
            raise ConfigError(
                "with-packages mode requires at least one package"
            )
        return self

    @property
    def is_minimal(self) -> bool:
        return self.mode is BuildMode.MINIMAL

    @property
    def r_major(self) -> str:
        return self.r_version.split(".", 1)[0]

    @property
    def source_url(self) -> str:
        return CRAN_SOURCE_URL.format(major=self.r_major, version=self.r_version)

    @property
    def artifact_name(self) -> str:
        return f"R-{self.r_version}-{self.arch.value}-{self.mode.value}.AppImage"

    @property
    def tools_dir(self) -> Path:
        return self.build_root / "tools"

    @property
    def source_archive(self) -> Path:
        return self.build_root / f"R-{self.r_version}.tar.gz"

    @property
    def source_dir(self) -> Path:
        return self.build_root / f"R-{self.r_version}"

    @property
    def install_root(self) -> Path:
        return self.build_root / "install"

    @property
    def appdir(self) -> Path:
        return self.build_root / "R.AppDir"

    @property
    def logo_path(self) -> Path:
        return self.build_root / "Rlogo.svg"

    @property
    def artifact_path(self) -> Path:
        return self.build_root / self.artifact_name

    class Config:
        frozen = True
