import io
import tarfile

import pytest

from rappimage.config import Arch
from rappimage.errors import BuildError
from rappimage.source import build
from rappimage.source.tree import InstallTree, discover_install_tree

from conftest import FakeRunner


def _write_source_archive(config, files):
    config.build_root.mkdir(parents=True, exist_ok=True)
    with tarfile.open(config.source_archive, "w:gz") as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))


def _fake_install(root):
    prefix = root / "usr"
    (prefix / "bin").mkdir(parents=True)
    (prefix / "lib" / "R" / "bin" / "exec").mkdir(parents=True)
    return prefix


class TestConfigureArgs:

    def test_prefix_is_redirected_to_usr(self):
        args = build.configure_args()
        assert args[:2] == ["--prefix=/usr", "--libdir=/usr/lib"]
        assert "--enable-R-shlib" in args
        assert "--with-x" in args

    def test_compiler_env_per_arch(self):
        env = build.compiler_env(Arch.X86_64, base_env={})
        assert env == {
            "CFLAGS": "-march=x86-64 -O2",
            "CXXFLAGS": "-march=x86-64 -O2",
            "FFLAGS": "-O2",
        }
        assert build.compiler_env(Arch.AARCH64, base_env={})["CFLAGS"] == "-march=armv8-a -O2"

    def test_compiler_env_appends_to_existing_flags(self):
        env = build.compiler_env(Arch.X86_64, base_env={"CFLAGS": "-g", "FFLAGS": "-fPIC"})
        assert env["CFLAGS"] == "-g -march=x86-64 -O2"
        assert env["FFLAGS"] == "-fPIC -O2"


class TestJobCount:

    @pytest.mark.parametrize(
        "arch, cpus, expected",
        [
            (Arch.AARCH64, 8, 2),
            (Arch.AARCH64, 2, 2),
            (Arch.AARCH64, 1, 1),
            (Arch.X86_64, 16, 16),
        ],
    )
    def test_job_count(self, arch, cpus, expected):
        assert build.job_count(arch, cpu_count=cpus) == expected


class TestExtractSource:

    def test_extracts_into_build_root(self, minimal_config):
        top = f"R-{minimal_config.r_version}"
        _write_source_archive(minimal_config, {f"{top}/configure": "#!/bin/sh\n"})

        source_dir = build.extract_source(minimal_config)

        assert source_dir == minimal_config.source_dir
        assert (source_dir / "configure").read_text() == "#!/bin/sh\n"

    def test_skips_existing_tree(self, minimal_config):
        minimal_config.source_dir.mkdir(parents=True)
        assert build.extract_source(minimal_config) == minimal_config.source_dir

    def test_unexpected_layout(self, minimal_config):
        _write_source_archive(minimal_config, {"other/README": "x"})
        with pytest.raises(BuildError, match="expected directory"):
            build.extract_source(minimal_config)

    def test_corrupt_archive(self, minimal_config):
        minimal_config.build_root.mkdir(parents=True)
        minimal_config.source_archive.write_bytes(b"not a tarball")
        with pytest.raises(BuildError, match="Failed to extract"):
            build.extract_source(minimal_config)


class TestBuildR:

    def test_runs_configure_make_and_install(self, minimal_config, monkeypatch):
        minimal_config.source_dir.mkdir(parents=True)
        minimal_config.source_archive.write_bytes(b"")

        def responder(command, **kwargs):
            if command[:2] == ["make", "install"]:
                _fake_install(minimal_config.install_root)
            return 0, "", ""

        runner = FakeRunner(responder)
        monkeypatch.setattr(build, "run_command", runner)
        monkeypatch.setattr(build, "job_count", lambda arch: 4)

        tree = build.build_r(minimal_config)

        assert runner.commands == [
            ["./configure", *build.configure_args()],
            ["make", "-j4"],
            ["make", "install", f"DESTDIR={minimal_config.install_root}"],
        ]
        assert all(call["cwd"] == minimal_config.source_dir for call in runner.calls)
        assert isinstance(tree, InstallTree)
        assert tree.r_home == minimal_config.install_root / "usr" / "lib" / "R"

    def test_install_root_is_emptied_first(self, minimal_config, monkeypatch):
        minimal_config.source_dir.mkdir(parents=True)
        minimal_config.source_archive.write_bytes(b"")
        stale = minimal_config.install_root / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")

        def responder(command, **kwargs):
            if command[:2] == ["make", "install"]:
                _fake_install(minimal_config.install_root)
            return 0, "", ""

        monkeypatch.setattr(build, "run_command", FakeRunner(responder))
        build.build_r(minimal_config)

        assert not stale.exists()

    def test_failed_compile_keeps_source_tree(self, minimal_config, monkeypatch):
        minimal_config.source_dir.mkdir(parents=True)
        minimal_config.source_archive.write_bytes(b"")

        def responder(command, **kwargs):
            return (2, "", "error: ld returned 1") if command[0] == "make" else (0, "", "")

        monkeypatch.setattr(build, "run_command", FakeRunner(responder))

        with pytest.raises(BuildError, match="compile step failed"):
            build.build_r(minimal_config)
        assert minimal_config.source_dir.is_dir()


class TestInstallTree:

    def test_discover(self, tmp_path):
        _fake_install(tmp_path)
        tree = discover_install_tree(tmp_path)
        assert tree.bin_dir == tmp_path / "usr" / "bin"
        assert tree.exec_dir == tmp_path / "usr" / "lib" / "R" / "bin" / "exec"
        assert tree.man_dir == tmp_path / "usr" / "share" / "man"

    def test_incomplete_install(self, tmp_path):
        (tmp_path / "usr" / "bin").mkdir(parents=True)
        with pytest.raises(BuildError, match="incomplete"):
            discover_install_tree(tmp_path)
