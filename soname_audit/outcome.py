"""Per-artifact result types and diagnostic log sink."""
from __future__ import annotations

import enum
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional

from .errors import AuditError


class AuditStatus(enum.Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class LogEntry:
    level: int
    message: str

    @property
    def level_name(self):
        return logging.getLevelName(self.level)


class AuditLog:
    """
    Diagnostic sink scoped to a single audit call.

    Entries are kept in order on the instance so every outcome carries its own
    diagnostics, and are also forwarded to a regular named logger. Handler
    errors are dealt with by the logging module itself, so a broken handler
    never aborts an audit.
    """

    def __init__(self, name=None, logger=None):
        self.name = name
        self.entries: List[LogEntry] = []
        self._logger = logger or logging.getLogger("soname_audit.audit")

    def info(self, message):
        self._emit(logging.INFO, message)

    def warning(self, message, exc_info=None):
        self._emit(logging.WARNING, message, exc_info)

    def _emit(self, level, message, exc_info=None):
        self.entries.append(LogEntry(level, message))
        if self.name:
            self._logger.log(level, "[%s] %s", self.name, message, exc_info=exc_info)
        else:
            self._logger.log(level, "%s", message, exc_info=exc_info)

    @property
    def warnings(self):
        return [e.message for e in self.entries if e.level >= logging.WARNING]

    def render(self):
        return "\n".join(f"{e.level_name}: {e.message}" for e in self.entries)

    def __len__(self):
        return len(self.entries)


@dataclass(frozen=True)
class ArtifactRef:
    """A built file plus the install prefix its diagnostics are relative to."""

    path: str
    prefix: str

    @property
    def rel_path(self):
        return os.path.relpath(os.path.realpath(self.path), os.path.realpath(self.prefix))

    @property
    def basename(self):
        return os.path.basename(self.path)


@dataclass(frozen=True)
class AuditOutcome:
    status: AuditStatus
    check: str
    log: AuditLog = field(compare=False)
    path: Optional[str] = None
    error: Optional[AuditError] = field(default=None, compare=False)

    @classmethod
    def passed(cls, check, log, path=None):
        return cls(AuditStatus.PASSED, check, log, path)

    @classmethod
    def failed(cls, check, log, path=None, error=None):
        return cls(AuditStatus.FAILED, check, log, path, error)

    @classmethod
    def skipped(cls, check, log, path=None):
        return cls(AuditStatus.SKIPPED, check, log, path)

    def __bool__(self):
        return self.status is not AuditStatus.FAILED

    def as_dict(self):
        return {
            "check": self.check,
            "path": self.path,
            "status": self.status.value,
            "error": type(self.error).__name__ if self.error is not None else None,
            "log": [{"level": e.level_name, "message": e.message} for e in self.log.entries],
        }
