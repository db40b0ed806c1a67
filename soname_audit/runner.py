"""Execution of external patch tools, with output captured to log files."""
from __future__ import annotations

import contextlib
import os
import shlex
import subprocess
from typing import IO, Protocol, Sequence

LOG_DIR = "logs"


class Runner(Protocol):
    """
    Runs a command to completion inside some working root.

    Implementations report success or failure as a bool and write everything
    the command prints to `log_io`. The audit never assumes anything about how
    (or whether) the command is isolated.
    """

    def run(self, cmd: Sequence[str], log_io: IO[str], verbose: bool = False) -> bool:
        ...


class LocalRunner:
    """Runs commands as plain subprocesses with `root` as working directory."""

    def __init__(self, root, timeout=None):
        self.root = str(root)
        self.timeout = timeout

    def run(self, cmd, log_io, verbose=False):
        cmd = [str(c) for c in cmd]
        log_io.write(f"$ {shlex.join(cmd)}\n")
        log_io.flush()

        try:
            proc = subprocess.run(
                cmd,
                cwd=self.root,
                stdout=log_io,
                stderr=subprocess.STDOUT,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired:
            log_io.write(f"Timed out after {self.timeout} seconds\n")
            return False
        except OSError as e:
            log_io.write(f"Could not launch {cmd[0]}: {e}\n")
            return False

        log_io.write(f"Exit status {proc.returncode}\n")
        return proc.returncode == 0


def logfile_path(prefix, name):
    # Tool logs live next to the artifacts so they ship with the build
    return os.path.join(str(prefix), LOG_DIR, name.replace(os.sep, "_"))


@contextlib.contextmanager
def with_logfile(prefix, name):
    """Opens `<prefix>/logs/<name>` for writing, creating the directory."""
    path = logfile_path(prefix, name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as io:
        yield io
