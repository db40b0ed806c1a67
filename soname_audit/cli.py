"""Command-line entry point: audit the shared libraries of an install prefix."""
from __future__ import annotations

import argparse
import json
import os
import sys
import textwrap

from . import __version__
from .batch import audit_prefix, summarize
from .logging_config import setup_logging
from .outcome import AuditStatus
from .platforms import Platform
from .policy import PATCH_TOOLS, AuditPolicy

_STATUS_LABELS = {
    AuditStatus.PASSED: "PASS",
    AuditStatus.FAILED: "FAIL",
    AuditStatus.SKIPPED: "SKIP",
}


def build_parser():
    p = argparse.ArgumentParser(prog="soname-audit", description="Audit and repair SONAMEs of built shared libraries")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("prefix", help="Install prefix to scan for shared libraries")
    p.add_argument("--platform", help="Target triplet the libraries were built for (defaults to the host)")
    p.add_argument("--autofix", action="store_true", help="Set missing SONAMEs and create missing SONAME links")
    p.add_argument("--verbose", action="store_true", help="Log what was found and fixed for every library")
    p.add_argument("--jobs", "-j", type=int, help="Number of libraries audited in parallel (default: CPU count)")
    p.add_argument("--timeout", type=float, default=120.0, help="Seconds a single patch tool run may take")
    p.add_argument("--patch-tool", choices=PATCH_TOOLS, default="native",
                   help="native: patchelf / install_name_tool, lief: built-in LIEF patcher")
    p.add_argument("--patchelf", default="patchelf", help="patchelf executable")
    p.add_argument("--install-name-tool", default="install_name_tool", help="install_name_tool executable")
    p.add_argument("--json", action="store_true", help="Emit outcomes as a JSON list")
    p.add_argument("--log-level", default="WARNING", help="Log level")
    return p


def _print_outcomes(outcomes, verbose):
    for outcome in outcomes:
        print(f"{_STATUS_LABELS[outcome.status]} {outcome.check} {outcome.path}")
        if (verbose or outcome.status is AuditStatus.FAILED) and len(outcome.log):
            print(textwrap.indent(outcome.log.render(), "    "))
    counts = summarize(outcomes)
    print(f"{counts['passed']} passed, {counts['failed']} failed, {counts['skipped']} skipped")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    if not os.path.isdir(args.prefix):
        parser.error(f"prefix {args.prefix} is not a directory")

    try:
        platform = Platform.parse(args.platform) if args.platform else Platform.host()
        policy = AuditPolicy(
            verbose=args.verbose,
            autofix=args.autofix,
            timeout=args.timeout,
            jobs=args.jobs,
            patch_tool=args.patch_tool,
            patchelf=args.patchelf,
            install_name_tool=args.install_name_tool,
        )
    except ValueError as e:
        parser.error(str(e))

    outcomes = audit_prefix(args.prefix, platform, policy)

    if args.json:
        print(json.dumps([o.as_dict() for o in outcomes], indent=2))
    else:
        _print_outcomes(outcomes, args.verbose)

    if any(o.status is AuditStatus.FAILED for o in outcomes):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
