import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from rappimage.config import Arch
from rappimage.utils.fs import copy_file, ensure_dir
from rappimage.utils.subprocess import run_command

logger = logging.getLogger(__name__)


# Libraries every target host is expected to provide.
SYSTEM_LIBRARY_EXCLUDES = re.compile(
    r"linux-vdso|linux-gate|ld-linux|libc\.|libm\.|libdl\.|librt\.|libpthread\."
    r"|libresolv\.|libnss_|libutil\.|libcrypt\.|libX11\.|libXt\.|libXext\.|libXmu\."
)

RUNTIME_LIBRARY_PATTERNS = (
    "libgfortran.so.*",
    "libquadmath.so.*",
    "libgomp.so.*",
)

SYSTEM_LIBRARY_DIRS: Dict[Arch, Tuple[Path, ...]] = {
    Arch.X86_64: (
        Path("/lib/x86_64-linux-gnu"),
        Path("/usr/lib/x86_64-linux-gnu"),
        Path("/usr/lib64"),
    ),
    Arch.AARCH64: (
        Path("/lib/aarch64-linux-gnu"),
        Path("/usr/lib/aarch64-linux-gnu"),
        Path("/usr/lib64"),
    ),
}

_LDD_RESOLVED = re.compile(r"^\s*(\S+)\s+=>\s+(/\S+)\s+\(")
_LDD_MISSING = re.compile(r"^\s*(\S+)\s+=>\s+not found")


def is_excluded(library: Path) -> bool:
    return bool(SYSTEM_LIBRARY_EXCLUDES.search(library.name))


def parse_ldd_output(output: str) -> Tuple[List[Path], List[str]]:
    resolved: List[Path] = []
    missing: List[str] = []

    for line in output.splitlines():
        match = _LDD_RESOLVED.match(line)
        if match:
            resolved.append(Path(match.group(2)))
            continue

        match = _LDD_MISSING.match(line)
        if match:
            missing.append(match.group(1))

    return resolved, missing


def private_libraries(r_home: Path) -> List[Path]:
    lib_dir = r_home / "lib"
    if not lib_dir.is_dir():
        return []
    return sorted(
        path for path in lib_dir.iterdir()
        if path.is_file() and ".so" in path.name
    )


def resolve_closure(
    binaries: Iterable[Path],
    *,
    library_path: Sequence[Path] = (),
    bundle_root: Optional[Path] = None,
) -> Set[Path]:
    """Shared libraries the binaries need that the bundle must carry."""

    env = None
    if library_path:
        env = {"LD_LIBRARY_PATH": ":".join(str(p) for p in library_path)}

    closure: Set[Path] = set()

    for binary in binaries:
        result = run_command(["ldd", str(binary)], env=env, check=False)
        if result.returncode != 0:
            logger.debug("ldd skipped %s: %s", binary, (result.stderr or "").strip())
            continue

        resolved, missing = parse_ldd_output(result.stdout)
        for name in missing:
            logger.warning("%s needs %s, which ldd could not resolve", binary.name, name)

        for library in resolved:
            if is_excluded(library):
                continue
            if bundle_root is not None and _is_within(library, bundle_root):
                continue
            closure.add(library)

    return closure


def copy_dependency_closure(libraries: Iterable[Path], lib_dir: Path) -> List[Path]:
    ensure_dir(lib_dir)
    copied: List[Path] = []

    for library in sorted(libraries):
        target = lib_dir / library.name
        if target.exists():
            continue
        logger.info("Copying %s", library.name)
        copied.append(copy_file(library, target))

    return copied


def copy_runtime_libraries(
    arch: Arch,
    lib_dir: Path,
    search_dirs: Optional[Sequence[Path]] = None,
) -> List[Path]:
    """Fortran/OpenMP runtimes are dlopen'ed by packages, so ldd misses them."""

    copied: List[Path] = []
    for directory in search_dirs if search_dirs is not None else SYSTEM_LIBRARY_DIRS[arch]:
        if not directory.is_dir():
            continue
        for pattern in RUNTIME_LIBRARY_PATTERNS:
            for library in sorted(directory.glob(pattern)):
                target = lib_dir / library.name
                if target.exists() or not library.is_file():
                    continue
                copied.append(copy_file(library, target))

    return copied


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True
