"""
Failure kinds raised or reported by the SONAME audit.

Only ProbeFailure is ever raised to a caller (by probe.read_soname). The other
kinds are attached to a FAILED AuditOutcome so the batch can keep going.
"""


class AuditError(Exception):
    """Base class for every failure kind of the audit."""


class ProbeFailure(AuditError):
    """The file could not be opened or parsed as a recognized container."""

    def __init__(self, path, reason):
        super().__init__(f"Could not read an SONAME from {path}: {reason}")
        self.path = path
        self.reason = reason


class ToolInvocationFailure(AuditError):
    """The external patch tool exited non-zero, timed out or could not start."""

    def __init__(self, command, logfile=None):
        super().__init__(f"Patch tool failed: {' '.join(command)}")
        self.command = list(command)
        self.logfile = logfile


class VerificationMismatch(AuditError):
    """The patch tool reported success but the name read back differs."""

    def __init__(self, expected, observed):
        super().__init__(f"Expected SONAME {expected!r}, read back {observed!r}")
        self.expected = expected
        self.observed = observed


class FilesystemFailure(AuditError):
    """A symbolic link under the canonical name could not be created."""

    def __init__(self, path, reason):
        super().__init__(f"Could not create {path}: {reason}")
        self.path = path
        self.reason = reason
