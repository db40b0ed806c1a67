"""
SONAME Audit and Repair

Makes sure every shared library advertises an SONAME (or dylib ID on macOS).
Libraries without one fail the audit, or, when autofix is allowed, get their
own filename assigned through patchelf / install_name_tool. The tool's exit
status is never taken as proof: the name is read back with the same reader
that found it missing, and only an exact match passes.
"""
from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import ToolInvocationFailure, VerificationMismatch
from .outcome import ArtifactRef, AuditLog, AuditOutcome
from .platforms import OSFamily, Platform
from .probe import get_soname
from .runner import LocalRunner, Runner, logfile_path, with_logfile

CHECK = "soname"

PATCH_TOOLS = ("native", "lief")

# Targets whose kernels may run with 64k pages
_LARGE_PAGE_ARCHES = ("aarch64", "powerpc64le")


def basename_soname(path):
    """Default naming policy: a library without SONAME is named after its file."""
    return os.path.basename(path)


@dataclass(frozen=True)
class AuditPolicy:
    verbose: bool = False
    autofix: bool = False
    # Seconds a single patch tool run may take
    timeout: Optional[float] = 120.0
    jobs: Optional[int] = None
    patch_tool: str = "native"
    patchelf: str = "patchelf"
    install_name_tool: str = "install_name_tool"
    naming: Callable[[str], str] = basename_soname

    def __post_init__(self):
        if self.patch_tool not in PATCH_TOOLS:
            raise ValueError(f"Unknown patch tool {self.patch_tool!r}, expected one of {PATCH_TOOLS}")
        if self.jobs is not None and self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")

    def expected_name(self, path):
        return self.naming(path)


@dataclass(frozen=True)
class FixAttempt:
    """Provisional result of running the patch tool, before any read-back."""

    artifact: ArtifactRef
    expected: str
    ok: bool
    command: tuple = ()
    logfile: Optional[str] = None
    error: Optional[ToolInvocationFailure] = None


def patchelf_flags(platform: Platform):
    if platform.arch in _LARGE_PAGE_ARCHES:
        return ["--page-size", "65536"]
    return []


def set_soname_command(platform: Platform, soname, rel_path, policy: AuditPolicy):
    """
    Builds the command line that assigns `soname` to the file at `rel_path`
    (relative to the runner's working root).
    """
    family = platform.family
    if family is OSFamily.WINDOWS:
        raise ValueError("DLLs carry no SONAME to set")

    if policy.patch_tool == "lief":
        return [sys.executable, "-m", "soname_audit.lief_patch", "--set-soname", soname, rel_path]

    if family is OSFamily.MACOS:
        return [policy.install_name_tool, "-id", soname, rel_path]
    elif family is OSFamily.LINUX or family is OSFamily.BSD:
        return [policy.patchelf, *patchelf_flags(platform), "--set-soname", soname, rel_path]
    raise AssertionError(f"Unhandled OS family {family}")


def attempt_fix(artifact: ArtifactRef, platform: Platform, expected, log: AuditLog,
                policy: AuditPolicy, runner: Optional[Runner] = None) -> FixAttempt:
    """First phase of a repair: run the patch tool, trusting nothing yet."""
    rel_path = artifact.rel_path
    if runner is None:
        runner = LocalRunner(artifact.prefix, timeout=policy.timeout)

    cmd = set_soname_command(platform, expected, rel_path, policy)
    # Named after the prefix-relative path so same-named libraries in other
    # directories get their own log
    logname = f"set_soname_{rel_path}_{expected}.log"
    logfile = logfile_path(artifact.prefix, logname)
    if policy.verbose:
        log.info(f"Running {shlex.join(cmd)}")
    try:
        with with_logfile(artifact.prefix, logname) as io:
            ok = runner.run(cmd, io, verbose=policy.verbose)
    except OSError as e:
        log.warning(f"Could not run {cmd[0]} with its log at {logfile}: {e}")
        return FixAttempt(artifact, expected, False, tuple(cmd), logfile,
                          ToolInvocationFailure(cmd, logfile))

    if not ok:
        return FixAttempt(artifact, expected, False, tuple(cmd), logfile,
                          ToolInvocationFailure(cmd, logfile))
    return FixAttempt(artifact, expected, True, tuple(cmd), logfile)


def verify(artifact: ArtifactRef, attempt: FixAttempt, log: AuditLog,
           policy: AuditPolicy) -> AuditOutcome:
    """Second phase of a repair: read the SONAME back and compare."""
    rel_path = artifact.rel_path
    if not attempt.ok:
        log.warning(f"Unable to set SONAME on {rel_path} (see {attempt.logfile})")
        return AuditOutcome.failed(CHECK, log, rel_path, attempt.error)

    new_soname = get_soname(artifact.path, log)
    if new_soname != attempt.expected:
        log.warning(f"Set SONAME on {rel_path} to {attempt.expected}, but read back {new_soname}!")
        return AuditOutcome.failed(CHECK, log, rel_path,
                                   VerificationMismatch(attempt.expected, new_soname))

    if policy.verbose:
        log.info(f"Set SONAME of {rel_path} to \"{attempt.expected}\"")
    return AuditOutcome.passed(CHECK, log, rel_path)


def ensure_soname(artifact: ArtifactRef, platform: Platform, log: AuditLog,
                  policy: AuditPolicy = AuditPolicy(),
                  runner: Optional[Runner] = None) -> AuditOutcome:
    """
    Audits (and with policy.autofix, repairs) the SONAME of one library.

    Args:
        artifact: The library and the prefix it was installed into
        platform: Target platform the library was built for
        log: Sink for this call's diagnostics
        policy: verbose/autofix flags and patch tool settings
        runner: Where the patch tool runs; a LocalRunner rooted at the
            prefix when omitted

    Returns:
        PASSED when the library has (or now verifiably has) an SONAME
    """
    rel_path = artifact.rel_path

    # Windows DLLs have no notion of an SONAME
    if platform.is_windows:
        return AuditOutcome.passed(CHECK, log, rel_path)

    soname = get_soname(artifact.path, log)
    if soname is not None:
        if policy.verbose:
            log.info(f"{rel_path} already has SONAME \"{soname}\"")
        return AuditOutcome.passed(CHECK, log, rel_path)

    expected = policy.expected_name(artifact.path)
    if not policy.autofix:
        log.warning(f"{rel_path} has no SONAME")
        return AuditOutcome.failed(CHECK, log, rel_path)

    attempt = attempt_fix(artifact, platform, expected, log, policy, runner)
    return verify(artifact, attempt, log, policy)
