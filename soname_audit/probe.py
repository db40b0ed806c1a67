"""
SONAME Probe

Reads the canonical library name a shared object advertises about itself:
the DT_SONAME dynamic entry of an ELF file, or the LC_ID_DYLIB load command
of a Mach-O dylib. Any other kind of file has no such name.

Requires: LIEF (Library to Instrument Executable Formats) - pip install lief
"""
from __future__ import annotations

import enum
import os

import lief

from .errors import ProbeFailure


class BinaryFormat(enum.Enum):
    ELF = "elf"
    MACHO = "macho"
    OTHER = "other"


def detect_format(path):
    """
    Identifies the container format of a file from its header

    Args:
        path: Path to the file

    Returns:
        The BinaryFormat; anything that is neither ELF nor Mach-O (static
        archives, scripts, PE files...) is OTHER

    Raises:
        ProbeFailure: the file does not exist or cannot be read
    """
    if not os.path.isfile(path):
        raise ProbeFailure(path, "no such file")
    try:
        if lief.is_elf(str(path)):
            return BinaryFormat.ELF
        if lief.is_macho(str(path)):
            return BinaryFormat.MACHO
    except (OSError, RuntimeError, TypeError, ValueError) as e:
        raise ProbeFailure(path, e) from e
    return BinaryFormat.OTHER


def _elf_soname(binary):
    # Scan the dynamic entries for a DT_SONAME, LIEF already resolved its
    # string table offset into text
    for entry in binary.dynamic_entries:
        if entry.tag == lief.ELF.DynamicEntry.TAG.SONAME:
            return entry.name
    return None


def _macho_soname(binary):
    # Only a dylib carries an identification command
    for command in binary.commands:
        if command.command == lief.MachO.LoadCommand.TYPE.ID_DYLIB:
            return command.name
    return None


def _parse(path, expected_type):
    try:
        binary = lief.parse(str(path))
    except (OSError, RuntimeError, TypeError, ValueError) as e:
        raise ProbeFailure(path, e) from e

    if binary is None:
        raise ProbeFailure(path, "LIEF could not parse the file")
    if not isinstance(binary, expected_type):
        raise ProbeFailure(path, f"expected {expected_type.__module__}, got {type(binary).__name__}")
    # LIEF may return an empty binary rather than None for an unreadable header
    if expected_type is lief.ELF.Binary and binary.header.file_type == lief.ELF.Header.FILE_TYPE.NONE:
        raise ProbeFailure(path, "truncated or corrupt ELF header")
    return binary


def read_soname(path):
    """
    Reads the SONAME (or dylib ID) of a file

    Args:
        path: Path to the file

    Returns:
        The embedded name, or None if the file carries no such record

    Raises:
        ProbeFailure: the file looks like ELF or Mach-O but cannot be parsed
    """
    fmt = detect_format(path)
    if fmt is BinaryFormat.ELF:
        return _elf_soname(_parse(path, lief.ELF.Binary))
    elif fmt is BinaryFormat.MACHO:
        return _macho_soname(_parse(path, lief.MachO.Binary))
    elif fmt is BinaryFormat.OTHER:
        return None
    raise AssertionError(f"Unhandled binary format {fmt}")


def get_soname(path, log=None):
    """
    Like read_soname(), but a file that cannot be parsed is treated as having
    no SONAME. The failure is reported as a warning on `log` when given.
    """
    try:
        return read_soname(path)
    except ProbeFailure as e:
        if log is not None:
            log.warning(str(e), exc_info=e)
        return None
