"""Makes shared libraries reachable on disk under their SONAME."""
from __future__ import annotations

import os

from .errors import FilesystemFailure
from .outcome import ArtifactRef, AuditLog, AuditOutcome
from .policy import AuditPolicy
from .probe import get_soname

CHECK = "soname_link"


def ensure_name_link(artifact: ArtifactRef, log: AuditLog,
                     policy: AuditPolicy = AuditPolicy()) -> AuditOutcome:
    """
    We require that all shared libraries are accessible on disk through their
    SONAME (if it exists). While this is almost always true in practice, it
    doesn't hurt to make doubly sure. With policy.autofix a missing name is
    created as a relative symlink to the library next to it.
    """
    rel_path = artifact.rel_path

    # Nothing to reconcile without an SONAME
    soname = get_soname(artifact.path, log)
    if soname is None:
        return AuditOutcome.passed(CHECK, log, rel_path)

    # Where the SONAME-named file should be
    soname_path = os.path.join(os.path.dirname(artifact.path), os.path.basename(soname))
    if os.path.isfile(soname_path):
        return AuditOutcome.passed(CHECK, log, rel_path)

    if not policy.autofix:
        log.warning(f"Library {soname} does not exist next to {rel_path}")
        return AuditOutcome.failed(CHECK, log, rel_path)

    target = artifact.basename
    if policy.verbose:
        log.info(f"Library {soname} does not exist, creating link to {target}...")
    try:
        os.symlink(target, soname_path)
    except FileExistsError as e:
        # Another library with the same SONAME may have linked it first
        if not os.path.isfile(soname_path):
            log.warning(f"Could not link {soname} to {target}: {e}")
            return AuditOutcome.failed(CHECK, log, rel_path, FilesystemFailure(soname_path, e))
    except OSError as e:
        log.warning(f"Could not link {soname} to {target}: {e}")
        return AuditOutcome.failed(CHECK, log, rel_path, FilesystemFailure(soname_path, e))
    return AuditOutcome.passed(CHECK, log, rel_path)
