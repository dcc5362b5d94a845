"""
External command execution.

Every command is an argument list handed straight to subprocess; nothing is
joined into a shell string. Non-zero exits raise ExecutionError, expired
timeouts raise TimeoutError, and a missing executable raises NotFoundError.
"""

import logging
import os
import shlex
import shutil
import subprocess
from typing import Dict, List, Optional, Sequence

from .errors import ExecutionError, NotFoundError, TimeoutError

OPERATION_TIMEOUT = 300  # default timeout in seconds

logger = logging.getLogger(__name__)


class CommandRunner:
    """Run external tools with a bounded timeout and uniform error mapping."""

    def __init__(self, timeout: Optional[float] = OPERATION_TIMEOUT, env: Optional[Dict[str, str]] = None) -> None:
        self.timeout = timeout
        self.env = env

    def exists(self, tool: str) -> bool:
        return shutil.which(tool) is not None

    def run(
        self,
        cmd: Sequence[str],
        input_text: Optional[str] = None,
        check: bool = True,
        capture_output: bool = True,
        timeout: Optional[float] = None,
    ) -> subprocess.CompletedProcess:
        cmd = [str(c) for c in cmd]
        timeout = self.timeout if timeout is None else timeout
        logger.debug(f"Running command: {shlex.join(cmd)}")
        env = None
        if self.env:
            env = os.environ.copy()
            env.update(self.env)
        try:
            result = subprocess.run(
                cmd,
                input=input_text,
                capture_output=capture_output,
                text=True,
                timeout=timeout,
                env=env,
            )
        except FileNotFoundError:
            raise NotFoundError(cmd[0], "Executable")
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out after {timeout} seconds: {shlex.join(cmd)}")
            raise TimeoutError(cmd, timeout)
        if check and result.returncode != 0:
            logger.debug(f"Command exited with {result.returncode}: {shlex.join(cmd)}")
            raise ExecutionError(cmd, result.returncode, result.stdout, result.stderr)
        return result

    def succeeds(self, cmd: Sequence[str]) -> bool:
        """Run a probe command and report whether it exited with status 0."""
        try:
            return self.run(cmd, check=False).returncode == 0
        except (NotFoundError, TimeoutError):
            return False

    def output(self, cmd: List[str]) -> str:
        return self.run(cmd).stdout.strip()
