"""
Subprocess helpers for shell and script nodes.
"""

import asyncio
import os
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from core.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_SHELL = "/bin/sh"

SCRIPT_INTERPRETERS = {
    ".py": [sys.executable],
    ".js": ["node"],
    ".mjs": ["node"],
    ".cjs": ["node"],
    ".ts": ["npx", "tsx"],
}


@dataclass
class CommandResult:
    output: str
    exit_code: int


@dataclass(eq=False)
class CommandFailure(Exception):
    """A command exited non-zero; carries everything printed up to that point."""
    node_id: str
    command: str
    exit_code: int
    output: str

    def __str__(self) -> str:
        return f"Command failed with exit code {self.exit_code}"


def _merge_streams(stdout: bytes, stderr: bytes) -> str:
    out = stdout.decode("utf-8", errors="replace")
    err = stderr.decode("utf-8", errors="replace")
    if err:
        out = f"{out}\n[stderr]\n{err}"
    return out.strip()


async def run_argv(argv: Sequence[str], cwd: str, env: Optional[dict] = None) -> CommandResult:
    """Run a program and capture its combined output. Never raises for process errors."""
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=env if env is not None else os.environ.copy(),
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        return CommandResult(output=f"Failed to start process: {e}", exit_code=1)

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
            await proc.wait()
        raise

    return CommandResult(output=_merge_streams(stdout, stderr), exit_code=proc.returncode or 0)


async def run_shell_command(command: str, cwd: str, shell: str = DEFAULT_SHELL) -> CommandResult:
    return await run_argv([shell, "-c", command], cwd)


async def run_commands(
    node_id: str,
    commands: Sequence[str],
    cwd: str,
    shell: str = DEFAULT_SHELL
) -> Tuple[str, int]:
    """
    Run commands one after another, stopping at the first failure.

    Returns:
        (combined output, last exit code)

    Raises:
        CommandFailure: If a command exits non-zero
    """
    outputs: List[str] = []
    last_exit_code = 0

    for command in commands:
        if not command.strip():
            continue

        logger.debug(f"[{node_id}] $ {command}")
        result = await run_shell_command(command, cwd, shell)
        outputs.append(f"$ {command}\n{result.output}")
        last_exit_code = result.exit_code

        if result.exit_code != 0:
            raise CommandFailure(
                node_id=node_id,
                command=command,
                exit_code=result.exit_code,
                output="\n\n".join(outputs),
            )

    return "\n\n".join(outputs), last_exit_code


def script_argv(script: str, cwd: str, args: Sequence[str] = (), shell: str = DEFAULT_SHELL) -> List[str]:
    """Pick an interpreter for a script file based on its extension."""
    path = Path(script)
    if not path.is_absolute():
        path = Path(cwd) / path

    suffix = path.suffix.lower()
    if suffix == ".sh":
        interpreter = [shell]
    else:
        interpreter = SCRIPT_INTERPRETERS.get(suffix, [])
    return [*interpreter, str(path), *args]


async def run_scripts(
    node_id: str,
    scripts: Sequence[str],
    cwd: str,
    args: Sequence[str] = (),
    shell: str = DEFAULT_SHELL
) -> Tuple[str, int]:
    """Run script files in sequence with the same failure rules as shell commands."""
    outputs: List[str] = []
    last_exit_code = 0

    for script in scripts:
        if not script.strip():
            continue

        argv = script_argv(script, cwd, args, shell)
        display = shlex.join(argv)
        result = await run_argv(argv, cwd)
        outputs.append(f"$ {display}\n{result.output}")
        last_exit_code = result.exit_code

        if result.exit_code != 0:
            raise CommandFailure(
                node_id=node_id,
                command=display,
                exit_code=result.exit_code,
                output="\n\n".join(outputs),
            )

    return "\n\n".join(outputs), last_exit_code
