import logging
from pathlib import Path
from typing import Iterable, List, Optional

from rappimage.bundle.desktop import create_desktop_metadata
from rappimage.bundle.elf import classify_executables
from rappimage.bundle.launcher import relocate_r_wrapper, write_apprun
from rappimage.bundle.layout import AppDirLayout, validate_for_packaging
from rappimage.bundle.libraries import (
    copy_dependency_closure,
    copy_runtime_libraries,
    private_libraries,
    resolve_closure,
)
from rappimage.bundle.linuxdeploy import run_linuxdeploy
from rappimage.bundle.packages import preinstall_packages
from rappimage.bundle.profile import write_rprofile
from rappimage.config import BuildConfig
from rappimage.errors import BundleError
from rappimage.source.tree import InstallTree
from rappimage.utils.fs import (
    FilesystemError,
    copy_file,
    copy_tree_missing,
    ensure_dir,
    make_executable,
    remove_dir,
)

logger = logging.getLogger(__name__)


REQUIRED_RESOURCES = ("etc", "library", "modules", "share", "bin")
OPTIONAL_RESOURCES = ("doc", "include")


def assemble_appdir(
    *,
    config: BuildConfig,
    tree: InstallTree,
    linuxdeploy: Optional[Path] = None,
) -> AppDirLayout:
    layout = AppDirLayout(config.appdir)

    remove_dir(layout.root)
    for directory in layout.all_dirs():
        ensure_dir(directory)

    create_desktop_metadata(config, layout)

    candidates = _executables(tree.bin_dir) + _executables(tree.exec_dir)
    binaries, scripts = classify_executables(candidates)
    logger.info(
        "Found %d ELF binaries and %d scripts in the install tree",
        len(binaries),
        len(scripts),
    )

    staged_binaries = _stage(binaries, tree, layout)
    staged_libraries = _stage(private_libraries(tree.r_home), tree, layout)

    # linuxdeploy resolves the desktop entry's Exec=R in usr/bin.
    _stage(scripts, tree, layout)
    write_apprun(layout, config)

    if linuxdeploy is not None:
        run_linuxdeploy(
            linuxdeploy,
            appdir=layout.root,
            desktop_file=layout.desktop_file,
            icon_file=layout.icon_file,
            executables=staged_binaries,
            libraries=staged_libraries,
            library_path=[layout.r_home / "lib"],
        )
    else:
        logger.info("Resolving shared library dependencies with ldd")
        closure = resolve_closure(
            staged_binaries + staged_libraries,
            library_path=[layout.r_home / "lib"],
            bundle_root=layout.root,
        )
        copy_dependency_closure(closure, layout.lib_dir)
        copy_runtime_libraries(config.arch, layout.lib_dir)

    _copy_resources(tree, layout)
    relocate_r_wrapper(layout)

    if layout.apprun.is_symlink():
        write_apprun(layout, config)

    preinstall_packages(config, layout)
    write_rprofile(layout.rprofile_site, config.mode, config.packages)
    logger.info("Rprofile.site written for %s build", config.mode.value)

    validate_for_packaging(layout)
    return layout


def _executables(directory: Path) -> List[Path]:
    if not directory.is_dir():
        return []
    return [path for path in directory.iterdir() if path.is_file()]


def _stage(paths: Iterable[Path], tree: InstallTree, layout: AppDirLayout) -> List[Path]:
    staged: List[Path] = []
    for path in paths:
        target = layout.usr_dir / path.relative_to(tree.prefix)
        copy_file(path, target)
        make_executable(target)
        staged.append(target)
    return staged


def _copy_resources(tree: InstallTree, layout: AppDirLayout) -> None:
    for name in REQUIRED_RESOURCES:
        source = tree.r_home / name
        if not source.is_dir():
            raise BundleError(f"R installation is missing {source}")
        copy_tree_missing(source, layout.r_home / name)

    optional = [(tree.r_home / name, layout.r_home / name) for name in OPTIONAL_RESOURCES]
    optional.append((tree.man_dir, layout.man_dir))

    for source, destination in optional:
        if not source.is_dir():
            logger.warning("Optional resource not found, skipping: %s", source)
            continue
        try:
            copy_tree_missing(source, destination)
        except FilesystemError as exc:
            logger.warning("Could not copy %s: %s", source, exc)
