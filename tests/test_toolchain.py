import os

import pytest

from rappimage.config import Arch
from rappimage.errors import DownloadError
from rappimage.toolchain import fetch


@pytest.fixture
def fake_download(monkeypatch):
    calls = []

    def _download(url, dst):
        calls.append(url)
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_bytes(b"\x7fELF fake AppImage")
        return dst

    monkeypatch.setattr(fetch, "download", _download)
    return calls


class TestToolUrls:

    def test_urls_follow_continuous_channel(self):
        assert fetch.tool_url("appimagetool", Arch.AARCH64) == (
            "https://github.com/AppImage/AppImageKit/releases/download/continuous/"
            "appimagetool-aarch64.AppImage"
        )
        assert fetch.tool_url("linuxdeploy", Arch.X86_64).endswith(
            "/continuous/linuxdeploy-x86_64.AppImage"
        )

    def test_unknown_tool(self):
        with pytest.raises(DownloadError, match="Unknown helper tool"):
            fetch.tool_url("appimageupdate", Arch.X86_64)

    def test_tool_path(self, tmp_path):
        assert fetch.tool_path("appimagetool", Arch.X86_64, tmp_path) == (
            tmp_path / "appimagetool-x86_64.AppImage"
        )


class TestFetchTool:

    def test_downloads_once_then_uses_cache(self, tmp_path, fake_download):
        first = fetch.fetch_tool("appimagetool", arch=Arch.X86_64, cache_dir=tmp_path)
        second = fetch.fetch_tool("appimagetool", arch=Arch.X86_64, cache_dir=tmp_path)

        assert first == second == tmp_path / "appimagetool-x86_64.AppImage"
        assert len(fake_download) == 1

    def test_downloaded_tool_is_executable(self, tmp_path, fake_download):
        path = fetch.fetch_tool("linuxdeploy", arch=Arch.AARCH64, cache_dir=tmp_path)
        assert os.access(path, os.X_OK)

    def test_architectures_are_cached_separately(self, tmp_path, fake_download):
        fetch.fetch_tool("appimagetool", arch=Arch.X86_64, cache_dir=tmp_path)
        fetch.fetch_tool("appimagetool", arch=Arch.AARCH64, cache_dir=tmp_path)
        assert len(fake_download) == 2

    def test_download_failure_propagates(self, tmp_path, monkeypatch):
        def _fail(url, dst):
            raise DownloadError(f"Failed to download {url}")

        monkeypatch.setattr(fetch, "download", _fail)

        with pytest.raises(DownloadError):
            fetch.fetch_tool("appimagetool", arch=Arch.X86_64, cache_dir=tmp_path)
        assert not (tmp_path / "appimagetool-x86_64.AppImage").exists()
