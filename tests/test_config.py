from pathlib import Path

import pytest

from rappimage.config import (
    DEFAULT_PACKAGES,
    DEFAULT_R_VERSION,
    Arch,
    BuildConfig,
    BuildMode,
    normalize_arch,
)
from rappimage.errors import ConfigError


class TestNormalizeArch:

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("x86_64", Arch.X86_64),
            ("amd64", Arch.X86_64),
            ("aarch64", Arch.AARCH64),
            ("arm64", Arch.AARCH64),
            ("  ARM64 ", Arch.AARCH64),
        ],
    )
    def test_supported_values(self, value, expected):
        assert normalize_arch(value) is expected

    @pytest.mark.parametrize("value", ["i686", "armv7l", "riscv64", ""])
    def test_unsupported_values(self, value):
        with pytest.raises(ConfigError, match="Unsupported architecture"):
            normalize_arch(value)


class TestBuildConfig:

    def test_defaults(self, tmp_path):
        config = BuildConfig(arch="x86_64", build_root=tmp_path)
        assert config.r_version == DEFAULT_R_VERSION
        assert config.mode is BuildMode.MINIMAL
        assert config.packages == ()
        assert config.use_linuxdeploy is True

    def test_arch_alias_is_normalized(self, tmp_path):
        config = BuildConfig(arch="arm64", build_root=tmp_path)
        assert config.arch is Arch.AARCH64

    def test_unsupported_arch_raises_config_error(self, tmp_path):
        with pytest.raises(ConfigError):
            BuildConfig(arch="sparc", build_root=tmp_path / "build")
        assert not (tmp_path / "build").exists()

    @pytest.mark.parametrize("version", ["4.5", "latest", "4.5.1-rc", ""])
    def test_invalid_version(self, tmp_path, version):
        with pytest.raises(ConfigError, match="Invalid R version"):
            BuildConfig(arch="x86_64", r_version=version, build_root=tmp_path)

    def test_artifact_name_includes_version_arch_and_mode(self, tmp_path):
        minimal = BuildConfig(arch="x86_64", r_version="4.4.2", build_root=tmp_path)
        assert minimal.artifact_name == "R-4.4.2-x86_64-minimal.AppImage"

        full = BuildConfig(
            arch="aarch64",
            mode=BuildMode.WITH_PACKAGES,
            packages=["jsonlite"],
            build_root=tmp_path,
        )
        assert full.artifact_name == f"R-{DEFAULT_R_VERSION}-aarch64-with-packages.AppImage"

    def test_source_url_uses_major_version(self, tmp_path):
        config = BuildConfig(arch="x86_64", r_version="4.5.1", build_root=tmp_path)
        assert config.source_url == (
            "https://cran.r-project.org/src/base/R-4/R-4.5.1.tar.gz"
        )

    def test_derived_paths(self, tmp_path):
        config = BuildConfig(arch="x86_64", r_version="4.5.1", build_root=tmp_path)
        assert config.tools_dir == tmp_path / "tools"
        assert config.source_archive == tmp_path / "R-4.5.1.tar.gz"
        assert config.source_dir == tmp_path / "R-4.5.1"
        assert config.install_root == tmp_path / "install"
        assert config.appdir == tmp_path / "R.AppDir"
        assert config.logo_path == tmp_path / "Rlogo.svg"
        assert config.artifact_path == tmp_path / "R-4.5.1-x86_64-minimal.AppImage"

    def test_default_build_root_is_cwd_build(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = BuildConfig(arch="x86_64")
        assert config.build_root == Path(tmp_path) / "build"

    def test_minimal_rejects_packages(self, tmp_path):
        with pytest.raises(ConfigError, match="with-packages"):
            BuildConfig(arch="x86_64", packages=["jsonlite"], build_root=tmp_path)

    def test_with_packages_requires_packages(self, tmp_path):
        with pytest.raises(ConfigError, match="at least one package"):
            BuildConfig(
                arch="x86_64",
                mode=BuildMode.WITH_PACKAGES,
                build_root=tmp_path,
            )

    def test_package_names_are_validated_and_deduplicated(self, tmp_path):
        config = BuildConfig(
            arch="x86_64",
            mode=BuildMode.WITH_PACKAGES,
            packages=["data.table", "DT", "data.table"],
            build_root=tmp_path,
        )
        assert config.packages == ("data.table", "DT")

        with pytest.raises(ConfigError, match="Invalid R package name"):
            BuildConfig(
                arch="x86_64",
                mode=BuildMode.WITH_PACKAGES,
                packages=["jsonlite; rm -rf /"],
                build_root=tmp_path,
            )

    def test_default_packages_are_valid(self, tmp_path):
        config = BuildConfig(
            arch="x86_64",
            mode=BuildMode.WITH_PACKAGES,
            packages=DEFAULT_PACKAGES,
            build_root=tmp_path,
        )
        assert config.packages == DEFAULT_PACKAGES

    def test_config_is_frozen(self, minimal_config):
        with pytest.raises(Exception):
            minimal_config.r_version = "4.4.0"
