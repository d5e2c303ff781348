from pathlib import Path
from typing import Iterable, List, Tuple

ELF_MAGIC = b"\x7fELF"


def is_elf(path: Path) -> bool:
    if not path.is_file():
        return False
    try:
        with path.open("rb") as f:
            return f.read(len(ELF_MAGIC)) == ELF_MAGIC
    except OSError:
        return False


def classify_executables(paths: Iterable[Path]) -> Tuple[List[Path], List[Path]]:
    """Split files into (ELF binaries, scripts).

    Only ELF files can go through the dependency closure; wrapper scripts
    such as ``bin/R`` are copied as they are.
    """

    binaries: List[Path] = []
    scripts: List[Path] = []

    for path in sorted(paths):
        if not path.is_file():
            continue
        if is_elf(path):
            binaries.append(path)
        else:
            scripts.append(path)

    return binaries, scripts
