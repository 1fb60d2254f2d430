"""
Utility functions for running external commands.

Provides a wrapper around subprocess that records every call and its
output in the run transcript.
"""

import os
import subprocess

from kvmctl.transcript import logger

# Exit status reported when the binary itself is missing, as a shell would.
COMMAND_NOT_FOUND = 127


def run_command(
    cmd: list[str],
    sudo: bool = False,
    **kwargs
) -> subprocess.CompletedProcess:
    """
    Run a command and return the result.

    Output is always captured and written to the transcript. Non-zero exit
    statuses are returned, not raised; callers decide which error applies.

    Args:
        cmd: Command and arguments as a list
        sudo: Whether to run with sudo (if not root)
        **kwargs: Additional arguments to pass to subprocess.run

    Returns:
        CompletedProcess object with command results
    """
    if sudo and os.geteuid() != 0:
        cmd = ["sudo"] + cmd

    logger.info("$ %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            check=False,
            **kwargs
        )
    except FileNotFoundError as e:
        result = subprocess.CompletedProcess(cmd, COMMAND_NOT_FOUND, "", str(e))

    if result.stdout:
        logger.info(result.stdout.rstrip())
    if result.stderr:
        logger.warning(result.stderr.rstrip())
    logger.info("exit status %d", result.returncode)
    return result


def describe_failure(result: subprocess.CompletedProcess) -> str:
    """Short human-readable reason for a failed command."""
    detail = (result.stderr or result.stdout or "").strip().splitlines()
    reason = detail[-1] if detail else f"exit status {result.returncode}"
    return reason[:200]
