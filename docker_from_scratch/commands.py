"""Command execution helpers shared by every host capability."""

import logging
import os
import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from docker_from_scratch.settings import LOGGER_NAME, OPERATION_TIMEOUT

logger = logging.getLogger(LOGGER_NAME)


def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    input_text: Optional[str] = None,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[int] = OPERATION_TIMEOUT,
) -> subprocess.CompletedProcess:
    """
    Executes a system command and returns the CompletedProcess.

    Args:
        cmd: Command and arguments as a list
        check: Whether to raise CalledProcessError on a non-zero exit
        capture_output: Whether to capture stdout/stderr
        input_text: Text fed to the command's stdin
        cwd: Working directory for the command
        env: Environment variables for the command
        timeout: Command timeout in seconds

    Returns:
        CompletedProcess instance with command results
    """
    logger.debug(f"Executing: {' '.join(cmd)}")
    try:
        result = subprocess.run(
            cmd,
            input=input_text,
            cwd=str(cwd) if cwd else None,
            env=env or os.environ.copy(),
            check=check,
            text=True,
            capture_output=capture_output,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"Command failed ({e.returncode}): {' '.join(cmd)}")
        if e.stderr:
            logger.debug(f"Stderr: {e.stderr.strip()}")
        raise
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout} seconds: {' '.join(cmd)}")
        raise

    if result.returncode != 0:
        logger.debug(f"Command exited {result.returncode}: {' '.join(cmd)}")
    return result


def sudo(cmd: List[str]) -> List[str]:
    """Prefix a command with sudo."""
    return ["sudo"] + cmd


def command_exists(cmd: str) -> bool:
    """Check if a command exists in the system path."""
    return shutil.which(cmd) is not None


def error_text(error: subprocess.CalledProcessError) -> str:
    """Best diagnostic text for a failed command."""
    for stream in (error.stderr, error.output):
        if stream and str(stream).strip():
            return str(stream).strip().splitlines()[-1]
    return f"exit status {error.returncode}"
