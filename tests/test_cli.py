import json
import os

import pytest

import soname_audit
from conftest import make_elf, requires_elf
from soname_audit.cli import main
from soname_audit.probe import get_soname


@requires_elf
def test_reports_missing_soname(prefix, capsys):
    make_elf(str(prefix / "lib" / "libnone.so"))
    assert main([str(prefix), "--platform", "x86_64-linux-gnu"]) == 1
    out = capsys.readouterr().out
    assert "FAIL soname lib/libnone.so" in out
    assert "SKIP soname_link lib/libnone.so" in out
    assert "0 passed, 1 failed, 1 skipped" in out


@requires_elf
def test_json_output(prefix, capsys):
    make_elf(str(prefix / "lib" / "libfoo.so.1"), soname="libfoo.so.1")
    assert main([str(prefix), "--platform", "x86_64-linux-gnu", "--json"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert [(d["check"], d["status"]) for d in data] == [("soname", "passed"), ("soname_link", "passed")]


@requires_elf
def test_autofix_with_lief_patch_tool(prefix, capsys, monkeypatch):
    # The patch tool runs as a subprocess from inside the prefix
    monkeypatch.setenv("PYTHONPATH", os.path.dirname(os.path.dirname(soname_audit.__file__)))
    lib = make_elf(str(prefix / "lib" / "libnone.so"))
    args = [str(prefix), "--platform", "x86_64-linux-gnu", "--autofix", "--patch-tool", "lief", "--verbose"]
    assert main(args) == 0
    assert get_soname(lib) == "libnone.so"
    assert 'Set SONAME of lib/libnone.so to "libnone.so"' in capsys.readouterr().out


def test_bad_platform_is_usage_error(prefix):
    with pytest.raises(SystemExit) as exc:
        main([str(prefix), "--platform", "x86_64-unknown-haiku"])
    assert exc.value.code == 2


def test_missing_prefix_is_usage_error(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope")])
    assert exc.value.code == 2


@requires_elf
def test_failure_shows_its_log_and_accepts_log_level(prefix, capsys):
    make_elf(str(prefix / "lib" / "libnone.so"))
    assert main([str(prefix), "--platform", "x86_64-linux-gnu", "--log-level", "DEBUG"]) == 1
    out = capsys.readouterr().out
    assert "    WARNING: " in out
    assert "lib/libnone.so" in out
