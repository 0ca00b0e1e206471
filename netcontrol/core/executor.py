"""Host command execution — the single narrow seam to the operating system."""

import abc
import asyncio
import shlex

import structlog
from pydantic import BaseModel

logger = structlog.get_logger()

SECRET_ARGS = {"wifi-sec.psk", "wifi-sec.wep-key0", "802-11-wireless-security.psk"}


def redact(argv: list[str]) -> str:
    """Shell-quoted argv for logs, with values following secret properties masked."""
    masked = list(argv)
    for i, arg in enumerate(masked[:-1]):
        if arg in SECRET_ARGS:
            masked[i + 1] = "***"
    return shlex.join(masked)


class CommandResult(BaseModel):
    """Result of a completed host command."""

    command: str
    stdout: str
    stderr: str
    exit_code: int


class ExecError(Exception):
    """A host command exited non-zero, timed out, or could not be started."""

    def __init__(self, argv: list[str], exit_code: int, stderr: str = "", stdout: str = ""):
        self.argv = list(argv)
        self.exit_code = exit_code
        self.stderr = stderr
        self.stdout = stdout
        super().__init__(f"{redact(self.argv)} exited {exit_code}: {stderr.strip()}")


class CommandExecutor(abc.ABC):
    """Runs one argv command. Implementations never go through a shell."""

    @abc.abstractmethod
    async def execute(self, argv: list[str], timeout: float | None = None) -> CommandResult:
        """Run a command and return its output.

        Args:
            argv: program and arguments, passed verbatim to the OS.
            timeout: seconds before the process is killed. None uses the executor default.

        Returns:
            CommandResult with stripped stdout/stderr.

        Raises:
            ExecError on non-zero exit, timeout (exit_code -1) or missing binary (exit_code 127).
        """


class SubprocessExecutor(CommandExecutor):
    """Executes commands with asyncio subprocesses, optionally via non-interactive sudo."""

    def __init__(self, default_timeout: float = 30.0, use_sudo: bool = False):
        self._default_timeout = default_timeout
        self._use_sudo = use_sudo

    async def execute(self, argv: list[str], timeout: float | None = None) -> CommandResult:
        if not argv:
            raise ValueError("argv must not be empty")
        full_argv = ["sudo", "-n", *argv] if self._use_sudo else list(argv)
        command = redact(full_argv)
        limit = timeout if timeout is not None else self._default_timeout

        try:
            proc = await asyncio.create_subprocess_exec(
                *full_argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.warning("command_not_found", command=command)
            raise ExecError(full_argv, 127, stderr=f"{full_argv[0]}: command not found")

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=limit)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("command_timeout", command=command, timeout=limit)
            raise ExecError(full_argv, -1, stderr=f"timed out after {limit}s")

        result = CommandResult(
            command=command,
            stdout=stdout.decode(errors="replace").strip(),
            stderr=stderr.decode(errors="replace").strip(),
            exit_code=proc.returncode,
        )
        logger.debug("command_executed", command=command, exit_code=result.exit_code)
        if result.exit_code != 0:
            raise ExecError(full_argv, result.exit_code, stderr=result.stderr, stdout=result.stdout)
        return result
