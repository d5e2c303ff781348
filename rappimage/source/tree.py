from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from rappimage.errors import BuildError


INSTALL_PREFIX = "/usr"


class InstallTree(BaseModel):
    """Read-only result of ``make install DESTDIR=<root>``.

    Files land under ``root`` but the compiled paths still point at
    ``INSTALL_PREFIX``.
    """

    root: Path = Field(
        ...,
        description="DESTDIR the build was installed into",
    )

    bin_dir: Path = Field(
        ...,
        description="Installed executables (usr/bin)",
    )

    r_home: Path = Field(
        ...,
        description="Installed R home (usr/lib/R)",
    )

    @field_validator("root", "bin_dir", "r_home")
    @classmethod
    def validate_directory(cls, value: Path) -> Path:
        if not value.exists():
            raise BuildError(
                f"Install tree is incomplete, missing: {value}"
            )
        if not value.is_dir():
            raise BuildError(
                f"Install tree path is not a directory: {value}"
            )
        return value

    @property
    def prefix(self) -> Path:
        return self.root / INSTALL_PREFIX.lstrip("/")

    @property
    def exec_dir(self) -> Path:
        return self.r_home / "bin" / "exec"

    @property
    def private_lib_dir(self) -> Path:
        return self.r_home / "lib"

    @property
    def man_dir(self) -> Path:
        return self.prefix / "share" / "man"

    class Config:
        frozen = True


def discover_install_tree(root: Path) -> InstallTree:
    prefix = root / INSTALL_PREFIX.lstrip("/")
    return InstallTree(
        root=root,
        bin_dir=prefix / "bin",
        r_home=prefix / "lib" / "R",
    )
