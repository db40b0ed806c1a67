"""Target platform descriptions, parsed from GNU-style triplets."""
from __future__ import annotations

import enum
import platform as _host
import sys
from dataclasses import dataclass


class OSFamily(enum.Enum):
    LINUX = "linux"
    BSD = "bsd"
    MACOS = "macos"
    WINDOWS = "windows"


# Checked in order against the non-arch part of a triplet
_FAMILY_MARKERS = (
    (OSFamily.MACOS, ("darwin", "apple", "macos")),
    (OSFamily.WINDOWS, ("mingw", "windows", "w64", "cygwin", "msvc")),
    (OSFamily.BSD, ("freebsd", "openbsd", "netbsd", "dragonfly")),
    (OSFamily.LINUX, ("linux",)),
)

_ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
    "ppc64le": "powerpc64le",
    "i386": "i686",
}


@dataclass(frozen=True)
class Platform:
    arch: str
    family: OSFamily

    @classmethod
    def parse(cls, triplet: str) -> "Platform":
        """Build a Platform from a triplet such as ``aarch64-apple-darwin20``."""
        parts = triplet.strip().lower().split("-")
        if len(parts) < 2 or not parts[0]:
            raise ValueError(f"Not a platform triplet: {triplet!r}")

        arch = _ARCH_ALIASES.get(parts[0], parts[0])
        rest = "-".join(parts[1:])
        for family, markers in _FAMILY_MARKERS:
            if any(marker in rest for marker in markers):
                return cls(arch, family)
        raise ValueError(f"Unknown operating system in triplet: {triplet!r}")

    @classmethod
    def host(cls) -> "Platform":
        machine = (_host.machine() or "unknown").lower()
        arch = _ARCH_ALIASES.get(machine, machine)
        if sys.platform.startswith("linux"):
            family = OSFamily.LINUX
        elif sys.platform == "darwin":
            family = OSFamily.MACOS
        elif sys.platform in ("win32", "cygwin"):
            family = OSFamily.WINDOWS
        elif "bsd" in sys.platform or sys.platform.startswith("dragonfly"):
            family = OSFamily.BSD
        else:
            raise ValueError(f"Unsupported host platform: {sys.platform}")
        return cls(arch, family)

    @property
    def is_windows(self):
        return self.family is OSFamily.WINDOWS

    def __str__(self):
        return f"{self.arch}-{self.family.value}"
