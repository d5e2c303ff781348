import logging
import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from rappimage.errors import RAppImageError

logger = logging.getLogger(__name__)

# configure and make can print thousands of lines; keep the end.
OUTPUT_TAIL_LINES = 40


class SubprocessError(RAppImageError):
    pass


def run_command(
    command: List[str],
    *,
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    capture_output: bool = True,
    text: bool = True,
) -> subprocess.CompletedProcess:
    logger.debug("Running: %s", " ".join(command))
    merged_env = {**os.environ, **env} if env else None

    try:
        result = subprocess.run(
            command,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            check=False,
            capture_output=capture_output,
            text=text,
        )
    except FileNotFoundError as exc:
        raise SubprocessError(f"Command not found: {command[0]}") from exc
    except OSError as exc:
        raise SubprocessError(f"Failed to execute {command[0]}: {exc}") from exc

    if check and result.returncode != 0:
        raise SubprocessError(format_failure(command, result))

    return result


def combined_output(result: subprocess.CompletedProcess) -> str:
    parts = [result.stdout or "", result.stderr or ""]
    return "\n".join(part for part in parts if part)


def _tail(output: str) -> str:
    lines = output.strip().splitlines()
    if len(lines) <= OUTPUT_TAIL_LINES:
        return "\n".join(lines)
    skipped = len(lines) - OUTPUT_TAIL_LINES
    return "\n".join([f"... ({skipped} earlier lines omitted)"] + lines[-OUTPUT_TAIL_LINES:])


def format_failure(
    command: List[str],
    result: subprocess.CompletedProcess,
) -> str:
    message = [f"{command[0]} exited with code {result.returncode}: {' '.join(command)}"]

    for name, output in (("stdout", result.stdout), ("stderr", result.stderr)):
        if output and output.strip():
            message.append(f"{name}:\n{_tail(output)}")

    return "\n".join(message)
