import logging
import subprocess
from typing import Optional

from sweetlog.errors import CommandFailed, CommandTimeout

logger = logging.getLogger(__name__)


def run_command(
    cmd: str,
    cwd: str = ".",
    ignore_errors: bool = False,
    timeout: Optional[float] = None,
) -> str:
    """
    Run a shell command and return its standard output.

    Args:
        cmd: Command line, interpreted by the shell
        cwd: Working directory for the command
        ignore_errors: Return the output even if the command exits non-zero
        timeout: Seconds to wait before giving up, None waits forever

    Returns:
        The command's standard output

    Raises:
        CommandFailed: on a non-zero exit unless errors are ignored
        CommandTimeout: if the command did not finish in time
    """
    logger.debug("$ %s (in %s)", cmd, cwd)
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            shell=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        raise CommandTimeout(cmd, timeout)

    if result.stderr:
        if ignore_errors or result.returncode == 0:
            logger.debug(result.stderr.rstrip())
        else:
            logger.error(result.stderr.rstrip())

    if result.returncode != 0 and not ignore_errors:
        raise CommandFailed(cmd, result.returncode, result.stderr)

    return result.stdout
