"""Runs the SONAME audits over every shared library of an install prefix."""
from __future__ import annotations

import logging
import os
import re
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from .errors import AuditError, ProbeFailure
from .outcome import ArtifactRef, AuditLog, AuditOutcome, AuditStatus
from .platforms import OSFamily, Platform
from .policy import CHECK as SONAME_CHECK
from .policy import AuditPolicy, ensure_soname
from .probe import BinaryFormat, detect_format
from .reconcile import CHECK as LINK_CHECK
from .reconcile import ensure_name_link
from .runner import LOG_DIR, Runner

logger = logging.getLogger(__name__)

_ELF_LIBRARY = re.compile(r"\.so(\.\d+)*$")

_LIBRARY_NAMES = {
    OSFamily.LINUX: _ELF_LIBRARY,
    OSFamily.BSD: _ELF_LIBRARY,
    OSFamily.MACOS: re.compile(r"\.dylib$"),
    OSFamily.WINDOWS: re.compile(r"\.dll$", re.IGNORECASE),
}

# PE files are not recognized by detect_format(), so DLLs are taken on name alone
_LIBRARY_FORMATS = {
    OSFamily.LINUX: BinaryFormat.ELF,
    OSFamily.BSD: BinaryFormat.ELF,
    OSFamily.MACOS: BinaryFormat.MACHO,
    OSFamily.WINDOWS: None,
}


def find_shared_libraries(prefix, platform: Platform) -> List[str]:
    """Find all shared libraries for `platform` under a prefix directory."""
    pattern = _LIBRARY_NAMES[platform.family]
    fmt = _LIBRARY_FORMATS[platform.family]
    libraries = []
    for dirpath, dirnames, filenames in os.walk(prefix):
        if dirpath == str(prefix) and LOG_DIR in dirnames:
            dirnames.remove(LOG_DIR)
        for fname in filenames:
            fpath = os.path.join(dirpath, fname)
            # SONAME links are what the audit creates, never what it checks
            if os.path.islink(fpath) or not os.path.isfile(fpath):
                continue
            if not pattern.search(fname):
                continue
            try:
                if fmt is not None and detect_format(fpath) is not fmt:
                    continue
            except ProbeFailure as e:
                logger.warning("Skipping %s: %s", fpath, e)
                continue
            libraries.append(fpath)
    return sorted(libraries)


def audit_library(artifact: ArtifactRef, platform: Platform, policy: AuditPolicy,
                  runner: Optional[Runner] = None) -> List[AuditOutcome]:
    """Runs both audits on one library, each with a fresh log."""
    soname_log = AuditLog(artifact.rel_path)
    try:
        soname_outcome = ensure_soname(artifact, platform, soname_log, policy, runner)
    except Exception as e:
        soname_log.warning(f"SONAME audit crashed: {e}", exc_info=e)
        soname_outcome = AuditOutcome.failed(SONAME_CHECK, soname_log, artifact.rel_path, AuditError(str(e)))

    link_log = AuditLog(artifact.rel_path)
    if soname_outcome.status is AuditStatus.FAILED:
        return [soname_outcome, AuditOutcome.skipped(LINK_CHECK, link_log, artifact.rel_path)]

    try:
        link_outcome = ensure_name_link(artifact, link_log, policy)
    except Exception as e:
        link_log.warning(f"SONAME link audit crashed: {e}", exc_info=e)
        link_outcome = AuditOutcome.failed(LINK_CHECK, link_log, artifact.rel_path, AuditError(str(e)))
    return [soname_outcome, link_outcome]


def audit_prefix(prefix, platform: Platform, policy: AuditPolicy = AuditPolicy(),
                 runner: Optional[Runner] = None, jobs: Optional[int] = None) -> List[AuditOutcome]:
    """
    Audits every shared library under `prefix` across a thread pool.

    Outcomes come back in discovery order, two per library. A failure in one
    library never stops the others.
    """
    prefix = str(prefix)
    libraries = find_shared_libraries(prefix, platform)
    workers = jobs or policy.jobs or os.cpu_count() or 1
    logger.info("Auditing %d libraries under %s for %s with %d workers",
                len(libraries), prefix, platform, workers)

    outcomes = []
    pool = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [
            pool.submit(audit_library, ArtifactRef(path, prefix), platform, policy, runner)
            for path in libraries
        ]
        for future in futures:
            outcomes.extend(future.result())
    except KeyboardInterrupt:
        # Stop dispatching, running tool calls finish on their own
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown()
    return outcomes


def summarize(outcomes):
    counts = Counter(o.status for o in outcomes)
    return {status.value: counts.get(status, 0) for status in AuditStatus}
