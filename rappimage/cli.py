import sys
from pathlib import Path
from typing import Optional

import typer

from rappimage.bundle.formats.appimage import smoke_test_appimage, verify_package_lock
from rappimage.bundle.formats.release import create_release
from rappimage.clean import CleanScope, clean_build
from rappimage.config import (
    DEFAULT_PACKAGES,
    DEFAULT_R_VERSION,
    BuildConfig,
    BuildMode,
    detect_arch,
    normalize_arch,
)
from rappimage.deps.check import detect_package_manager
from rappimage.deps.install import install_system_dependencies
from rappimage.errors import BuildInterrupted, PackagingError, RAppImageError
from rappimage.integrate import install_appimage, install_desktop_entry
from rappimage.logger import setup_logger
from rappimage.pipeline import run_pipeline, terminate_as_interrupt
from rappimage.status import appdir_problems, collect_status, disk_usage, host_info
from rappimage.utils.fs import human_size


app = typer.Typer(
    name="rappimage",
    help=(
        "rappimage: build R from source and package it as a portable AppImage.\n\n"
        "Environment variables: R_VERSION selects the R release to build."
    ),
    add_completion=False,
)


R_VERSION_OPTION = typer.Option(
    DEFAULT_R_VERSION,
    "--r-version",
    envvar="R_VERSION",
    help="R version to build",
)

ARCH_OPTION = typer.Option(
    None,
    "--arch",
    help="Target architecture: x86_64 or aarch64 (default: host)",
)

MODE_OPTION = typer.Option(
    BuildMode.MINIMAL,
    "--mode",
    case_sensitive=False,
    help="minimal: base R only; with-packages: preinstall R packages",
)

PACKAGE_OPTION = typer.Option(
    [],
    "--package",
    "-p",
    help="R package to preinstall in with-packages mode (can be passed multiple times)",
)

BUILD_DIR_OPTION = typer.Option(
    None,
    "--build-dir",
    help="Directory for downloads, sources and artifacts (default: ./build)",
)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
):

    setup_logger(verbose=verbose)


def _make_config(
    *,
    r_version: str,
    arch: Optional[str],
    mode: BuildMode,
    packages: list[str],
    build_dir: Optional[Path],
    use_linuxdeploy: bool = True,
) -> BuildConfig:
    if mode is BuildMode.WITH_PACKAGES and not packages:
        packages = list(DEFAULT_PACKAGES)

    options = dict(
        arch=normalize_arch(arch) if arch else detect_arch(),
        r_version=r_version,
        mode=mode,
        packages=packages,
        use_linuxdeploy=use_linuxdeploy,
    )
    if build_dir is not None:
        options["build_root"] = build_dir

    return BuildConfig(**options)


def _fail(exc: RAppImageError) -> None:
    typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
    sys.exit(exc.exit_code)


def _warn(message: str) -> None:
    typer.secho(message, fg=typer.colors.YELLOW, err=True)


@app.command()
def build(
    mode: BuildMode = MODE_OPTION,
    package: list[str] = PACKAGE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
    linuxdeploy: bool = typer.Option(
        True,
        "--linuxdeploy/--no-linuxdeploy",
        help="Bundle shared libraries with linuxdeploy instead of a manual ldd pass",
    ),
):
    """Build the R AppImage."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=package,
            build_dir=build_dir,
            use_linuxdeploy=linuxdeploy,
        )

        typer.echo(
            f"Building R {config.r_version} AppImage "
            f"({config.arch.value}, {config.mode.value})"
        )
        if not config.is_minimal:
            typer.echo(" - packages: " + ", ".join(config.packages))

        with terminate_as_interrupt():
            result = run_pipeline(config, progress=typer.echo)

        if result.version_line is None:
            _warn(f"AppImage test failed, but file was created: {result.artifact}")
        else:
            typer.echo(f" - {result.version_line}")

        typer.secho("Build complete!", fg=typer.colors.GREEN)
        typer.echo(f"AppImage: {result.artifact}")

    except KeyboardInterrupt:
        _fail(BuildInterrupted("Build interrupted"))

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def deps(
    manager: Optional[str] = typer.Option(
        None,
        "--manager",
        help="Package manager to use: apt-get, dnf or yum (default: auto-detect)",
    ),
    arch: Optional[str] = ARCH_OPTION,
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Print the install commands without running them",
    ),
):
    """Install the system packages needed to build R."""

    try:
        target = normalize_arch(arch) if arch else detect_arch()
        selected = manager or detect_package_manager()
        if selected:
            typer.echo(f"Using package manager: {selected}")

        steps = install_system_dependencies(
            manager=selected,
            arch=target,
            dry_run=dry_run,
        )

        if dry_run:
            for step in steps:
                typer.echo(" ".join(step.command))
        else:
            typer.secho("Dependencies installed", fg=typer.colors.GREEN)

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def test(
    mode: BuildMode = MODE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
    locked: bool = typer.Option(
        False,
        "--locked",
        help="Also check that package installation is blocked",
    ),
):
    """Smoke-test a built AppImage."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=[],
            build_dir=build_dir,
        )
        artifact = config.artifact_path
        if not artifact.is_file():
            raise PackagingError(
                f"AppImage not found: {artifact}. Run 'rappimage build' first"
            )

        typer.echo(f"Testing {artifact.name}")
        version_line = smoke_test_appimage(artifact)
        if version_line is None:
            _warn("AppImage test failed")
            sys.exit(1)
        typer.echo(f" - {version_line}")

        if locked:
            if not verify_package_lock(artifact):
                _warn("install.packages() is not blocked")
                sys.exit(1)
            typer.echo(" - package installation is blocked")

        typer.secho("AppImage test passed", fg=typer.colors.GREEN)

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def install(
    mode: BuildMode = MODE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
    bin_dir: Optional[Path] = typer.Option(
        None,
        "--bin-dir",
        help="Install directory (default: ~/.local/bin)",
    ),
):
    """Copy the AppImage to ~/.local/bin/R.AppImage."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=[],
            build_dir=build_dir,
        )
        target = install_appimage(config.artifact_path, bin_dir)
        typer.secho(f"Installed: {target}", fg=typer.colors.GREEN)
        _warn(f"Make sure {target.parent} is in your PATH")

    except RAppImageError as exc:
        _fail(exc)


@app.command("desktop-integration")
def desktop_integration(
    applications_dir: Optional[Path] = typer.Option(
        None,
        "--applications-dir",
        help="Directory for the desktop entry (default: ~/.local/share/applications)",
    ),
):
    """Create a desktop entry for the installed AppImage."""

    try:
        target = install_desktop_entry(applications_dir)
        typer.secho(f"Desktop integration created: {target}", fg=typer.colors.GREEN)

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def package(
    mode: BuildMode = MODE_OPTION,
    package_name: list[str] = PACKAGE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
    release_dir: Path = typer.Option(
        Path("release"),
        "--release-dir",
        help="Directory for the release tarball",
    ),
):
    """Create a release tarball from a built AppImage."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=package_name,
            build_dir=build_dir,
        )
        archive = create_release(config, config.artifact_path, release_dir=release_dir)
        typer.secho(f"Release package created: {archive}", fg=typer.colors.GREEN)

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def status(
    mode: BuildMode = MODE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
):
    """Show what has been downloaded and built."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=[],
            build_dir=build_dir,
        )

        typer.echo("Build status:")
        typer.echo(f"R version: {config.r_version}")
        typer.echo(f"Build directory: {config.build_root}")
        for key, value in host_info(config).items():
            typer.echo(f"{key}: {value}")
        typer.echo("")

        for item in collect_status(config):
            if item.present:
                detail = f" ({item.size})" if item.size else ""
                typer.secho(f"[x] {item.label}: {item.path}{detail}", fg=typer.colors.GREEN)
            else:
                typer.secho(f"[ ] {item.label}: {item.path}", fg=typer.colors.YELLOW)

    except RAppImageError as exc:
        _fail(exc)


@app.command()
def validate(
    mode: BuildMode = MODE_OPTION,
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
):
    """Check an assembled AppDir before packaging it."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=mode,
            packages=[],
            build_dir=build_dir,
        )
        problems = appdir_problems(config)

    except RAppImageError as exc:
        _fail(exc)

    if problems:
        for problem in problems:
            typer.secho(f"[ ] {problem}", fg=typer.colors.RED, err=True)
        sys.exit(1)

    typer.secho(f"AppDir is ready for packaging: {config.appdir}", fg=typer.colors.GREEN)


@app.command("disk-usage")
def disk_usage_command(
    build_dir: Path = typer.Option(
        Path("build"),
        "--build-dir",
        help="Directory for downloads, sources and artifacts",
    ),
):
    """Show the size of everything in the build directory."""

    if not build_dir.is_dir():
        _warn(f"No build directory found: {build_dir}")
        return

    entries = disk_usage(build_dir)
    if not entries:
        _warn(f"No files in {build_dir}")
        return

    for path, size in entries:
        typer.echo(f"{human_size(size):>8}  {path}")


@app.command()
def quickstart():
    """Print the usual build, test and install sequence."""

    steps = [
        ("Install build dependencies", "rappimage deps"),
        ("Build a minimal AppImage", "rappimage build"),
        ("Or preinstall packages", "rappimage build --mode with-packages -p ggplot2"),
        ("Check the package lock", "rappimage test --locked"),
        ("Install to ~/.local/bin", "rappimage install"),
    ]
    for number, (title, command) in enumerate(steps, start=1):
        typer.secho(f"{number}. {title}:", fg=typer.colors.GREEN)
        typer.echo(f"   {command}")

    typer.echo("")
    _warn("Package installation is disabled inside the AppImage.")


@app.command("show-packages")
def show_packages(
    package_name: list[str] = PACKAGE_OPTION,
):
    """List the packages a with-packages build preinstalls."""

    names = package_name or list(DEFAULT_PACKAGES)
    typer.echo("Packages preinstalled in with-packages mode:")
    for name in names:
        typer.echo(f"  {name}")


@app.command()
def clean(
    scope: CleanScope = typer.Option(
        CleanScope.ARTIFACTS,
        "--scope",
        case_sensitive=False,
        help="artifacts: AppDir and AppImages; downloads: sources and tools; all: the build directory",
    ),
    r_version: str = R_VERSION_OPTION,
    arch: Optional[str] = ARCH_OPTION,
    build_dir: Optional[Path] = BUILD_DIR_OPTION,
):
    """Remove build outputs."""

    try:
        config = _make_config(
            r_version=r_version,
            arch=arch,
            mode=BuildMode.MINIMAL,
            packages=[],
            build_dir=build_dir,
        )
        removed = clean_build(config, scope)
        if not removed:
            _warn("Nothing to clean")
            return
        for path in removed:
            typer.echo(f" - removed {path}")
        typer.secho("Clean complete", fg=typer.colors.GREEN)

    except RAppImageError as exc:
        _fail(exc)


def run_cli() -> None:
    app()


if __name__ == "__main__":
    run_cli()
