import logging

from soname_audit.errors import VerificationMismatch
from soname_audit.outcome import ArtifactRef, AuditLog, AuditOutcome, AuditStatus


def test_log_keeps_entries_in_order():
    log = AuditLog("lib/libfoo.so")
    log.info("first")
    log.warning("second")
    assert [e.message for e in log.entries] == ["first", "second"]
    assert log.warnings == ["second"]
    assert log.render() == "INFO: first\nWARNING: second"


def test_log_forwards_to_logger(caplog):
    log = AuditLog("lib/libfoo.so")
    with caplog.at_level(logging.INFO, logger="soname_audit.audit"):
        log.warning("missing SONAME")
    assert "[lib/libfoo.so] missing SONAME" in caplog.text


def test_separate_logs_do_not_share_entries():
    a, b = AuditLog("a"), AuditLog("b")
    a.info("only a")
    assert len(a) == 1
    assert len(b) == 0


def test_artifact_rel_path(tmp_path):
    lib = tmp_path / "lib" / "libfoo.so"
    lib.parent.mkdir()
    lib.write_bytes(b"")
    assert ArtifactRef(str(lib), str(tmp_path)).rel_path == "lib/libfoo.so"


def test_outcome_truthiness_and_dict():
    log = AuditLog()
    log.warning("mismatch")
    failed = AuditOutcome.failed("soname", log, "lib/libfoo.so", VerificationMismatch("a", None))
    assert not failed
    assert AuditOutcome.passed("soname", AuditLog())
    assert AuditOutcome.skipped("soname_link", AuditLog())
    d = failed.as_dict()
    assert d["status"] == "failed"
    assert d["error"] == "VerificationMismatch"
    assert d["log"] == [{"level": "WARNING", "message": "mismatch"}]
    assert failed.status is AuditStatus.FAILED
