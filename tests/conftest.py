"""Shared fixtures for rappimage tests."""

import subprocess
from pathlib import Path
from typing import Callable, List, Optional

import pytest

from rappimage.config import Arch, BuildConfig, BuildMode
from rappimage.utils.subprocess import SubprocessError, format_failure

ELF_HEADER = b"\x7fELF\x02\x01\x01" + b"\x00" * 57


class FakeRunner:
    """Stand-in for ``run_command`` that records every call.

    ``responder`` maps a command to ``(returncode, stdout, stderr)``;
    the default succeeds silently. Like ``run_command``, a non-zero exit
    raises ``SubprocessError`` unless ``check=False`` is passed.
    """

    def __init__(self, responder: Optional[Callable] = None):
        self.calls: List[dict] = []
        self.responder = responder or (lambda command, **kwargs: (0, "", ""))

    def __call__(self, command, **kwargs):
        self.calls.append({"command": list(command), **kwargs})
        returncode, stdout, stderr = self.responder(list(command), **kwargs)
        result = subprocess.CompletedProcess(command, returncode, stdout, stderr)
        if kwargs.get("check", True) and returncode != 0:
            raise SubprocessError(format_failure(list(command), result))
        return result

    @property
    def commands(self) -> List[List[str]]:
        return [call["command"] for call in self.calls]


@pytest.fixture
def build_root(tmp_path):
    return tmp_path / "build"


@pytest.fixture
def minimal_config(build_root):
    return BuildConfig(arch=Arch.X86_64, build_root=build_root)


@pytest.fixture
def packages_config(build_root):
    return BuildConfig(
        arch=Arch.X86_64,
        mode=BuildMode.WITH_PACKAGES,
        packages=["jsonlite", "dplyr"],
        build_root=build_root,
    )


@pytest.fixture
def make_elf():
    def _make(path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(ELF_HEADER)
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def make_script():
    def _make(path: Path, body: str = "#!/bin/sh\nexec true\n") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(body)
        path.chmod(0o755)
        return path

    return _make


@pytest.fixture
def fake_runner():
    return FakeRunner()
