import shutil
import stat
from pathlib import Path

from rappimage.errors import RAppImageError


class FilesystemError(RAppImageError):
    pass

def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to create directory: {path}"
        ) from exc


def remove_dir(path: Path) -> None:
    try:
        if path.is_symlink():
            path.unlink()
        elif path.exists():
            shutil.rmtree(path)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove directory: {path}"
        ) from exc


def remove_file(path: Path) -> bool:
    try:
        if path.exists() or path.is_symlink():
            path.unlink()
            return True
    except OSError as exc:
        raise FilesystemError(
            f"Failed to remove file: {path}"
        ) from exc
    return False


def make_executable(path: Path) -> None:
    try:
        mode = path.stat().st_mode
        path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to mark file executable: {path}"
        ) from exc


def write_text(path: Path, text: str) -> None:
    ensure_dir(path.parent)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise FilesystemError(
            f"Failed to write file: {path}"
        ) from exc


def copy_file(source: Path, destination: Path) -> Path:
    ensure_dir(destination.parent)
    try:
        shutil.copy2(source, destination)
    except OSError as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination}"
        ) from exc
    return destination


def copy_tree_missing(source: Path, destination: Path) -> None:
    """Copy a tree into ``destination`` without replacing files already there.

    Files staged earlier (and possibly patched by the bundling helper) win
    over the pristine copies from ``source``.
    """

    def _copy_if_missing(src: str, dst: str) -> str:
        if Path(dst).exists() or Path(dst).is_symlink():
            return dst
        return shutil.copy2(src, dst)

    try:
        shutil.copytree(
            source,
            destination,
            symlinks=False,
            ignore_dangling_symlinks=True,
            dirs_exist_ok=True,
            copy_function=_copy_if_missing,
        )
    except (OSError, shutil.Error) as exc:
        raise FilesystemError(
            f"Failed to copy {source} to {destination}: {exc}"
        ) from exc


def human_size(num_bytes: int) -> str:
    size = float(num_bytes)
    for unit in ("B", "K", "M"):
        if size < 1024:
            return f"{size:.0f}{unit}" if unit == "B" else f"{size:.1f}{unit}"
        size /= 1024
    return f"{size:.1f}G"
