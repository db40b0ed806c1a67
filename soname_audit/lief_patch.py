"""
SONAME Patcher

Sets the SONAME of an ELF shared library, or the dylib ID of a Mach-O
library, and writes the binary back in place. Stands in for
`patchelf --set-soname` / `install_name_tool -id` on hosts that have neither.

Usage:
    python -m soname_audit.lief_patch --set-soname libfoo.so.1 lib/libfoo.so.1.2
    python -m soname_audit.lief_patch --print-soname lib/libfoo.so.1.2

Requires: LIEF (Library to Instrument Executable Formats) - pip install lief
"""

import argparse
import sys

import lief

from .errors import ProbeFailure
from .probe import read_soname


def _set_dylib_id(binary, path, soname):
    for command in binary.commands:
        if command.command == lief.MachO.LoadCommand.TYPE.ID_DYLIB:
            command.name = soname
            return
    raise RuntimeError(f"{path} has no LC_ID_DYLIB command, is it a dylib?")


def _set_macho_soname(path, soname):
    # Universal files keep every slice, like install_name_tool -id does
    fat = lief.MachO.parse(str(path))
    if fat is None or fat.size == 0:
        raise RuntimeError(f"LIEF could not parse {path}")

    slices = [fat.at(i) for i in range(fat.size)]
    for binary in slices:
        _set_dylib_id(binary, path, soname)

    if fat.size > 1:
        fat.write(str(path))
    else:
        slices[0].write(str(path))


def set_soname(path, soname):
    """
    Replaces (or adds) the SONAME record of a library

    Args:
        path: Path to the ELF or Mach-O library to modify
        soname: The new name

    Raises:
        RuntimeError: the file can't be parsed, or is a Mach-O file that is not
            a dylib (install_name_tool refuses those as well)
    """
    if lief.is_macho(str(path)):
        _set_macho_soname(path, soname)
        return

    # Load the target binary for modification using LIEF
    binary = lief.parse(str(path))
    if binary is None:
        raise RuntimeError(f"LIEF could not parse {path}")
    if not isinstance(binary, lief.ELF.Binary):
        raise RuntimeError(f"{path} is neither ELF nor Mach-O")
    if binary.header.file_type == lief.ELF.Header.FILE_TYPE.NONE:
        raise RuntimeError(f"{path} has a truncated or corrupt ELF header")

    # Rename the existing DT_SONAME entry, LIEF rebuilds the string table
    for entry in binary.dynamic_entries:
        if entry.tag == lief.ELF.DynamicEntry.TAG.SONAME:
            entry.name = soname
            break
    else:
        binary.add(lief.ELF.DynamicSharedObject(soname))

    # Write the modified binary back to the original file
    binary.write(str(path))


def main(argv=None):
    parser = argparse.ArgumentParser(description="Set or print the SONAME of a shared library")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--set-soname", metavar="NAME", help="New SONAME / dylib ID")
    action.add_argument("--print-soname", action="store_true", help="Print the current SONAME")
    parser.add_argument("library", help="ELF or Mach-O library")

    args = parser.parse_args(argv)

    if args.print_soname:
        try:
            soname = read_soname(args.library)
        except ProbeFailure as e:
            print(e, file=sys.stderr)
            return 1
        if soname is None:
            print(f"{args.library} has no SONAME", file=sys.stderr)
            return 1
        print(soname)
        return 0

    try:
        set_soname(args.library, args.set_soname)
    except (OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
