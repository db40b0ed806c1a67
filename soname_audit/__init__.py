"""Audit and repair of SONAME / dylib ID metadata in built shared libraries."""

from .errors import AuditError, FilesystemFailure, ProbeFailure, ToolInvocationFailure, VerificationMismatch
from .outcome import ArtifactRef, AuditLog, AuditOutcome, AuditStatus
from .platforms import OSFamily, Platform
from .policy import AuditPolicy, attempt_fix, basename_soname, ensure_soname, verify
from .probe import BinaryFormat, detect_format, get_soname, read_soname
from .reconcile import ensure_name_link

__version__ = "0.1.0"

__all__ = [
    "ArtifactRef",
    "AuditError",
    "AuditLog",
    "AuditOutcome",
    "AuditPolicy",
    "AuditStatus",
    "BinaryFormat",
    "FilesystemFailure",
    "OSFamily",
    "Platform",
    "ProbeFailure",
    "ToolInvocationFailure",
    "VerificationMismatch",
    "attempt_fix",
    "basename_soname",
    "detect_format",
    "ensure_name_link",
    "ensure_soname",
    "get_soname",
    "read_soname",
    "verify",
]
