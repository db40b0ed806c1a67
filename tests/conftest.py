"""Fixtures building small shared libraries to audit.

ELF libraries are copies of a CPython extension module from the running
interpreter: a real shared object that, like most plugins, has no DT_SONAME.
Mach-O dylibs are assembled by hand with struct, just enough for a parser to
find the header and load commands.
"""
import importlib
import os
import shutil
import struct

import lief
import pytest

from soname_audit.lief_patch import set_soname

_EXTENSION_CANDIDATES = ("_ctypes", "_decimal", "_json", "_struct", "select", "_socket", "math")


def _host_elf_library():
    for name in _EXTENSION_CANDIDATES:
        try:
            mod = importlib.import_module(name)
        except ImportError:
            continue
        path = getattr(mod, "__file__", None)
        if path and lief.is_elf(path):
            return path
    return None


HOST_ELF = _host_elf_library()

requires_elf = pytest.mark.skipif(HOST_ELF is None, reason="no ELF extension module on this host")


def make_elf(dest, soname=None):
    """Copy the host ELF library to `dest`, with exactly the given SONAME."""
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    shutil.copyfile(HOST_ELF, dest)
    if soname is not None:
        set_soname(dest, soname)
        return dest

    binary = lief.parse(str(dest))
    if any(e.tag == lief.ELF.DynamicEntry.TAG.SONAME for e in binary.dynamic_entries):
        binary.remove(lief.ELF.DynamicEntry.TAG.SONAME)
        binary.write(str(dest))
    return dest


_MH_MAGIC_64 = 0xFEEDFACF
_FAT_MAGIC = 0xCAFEBABE
_CPU_TYPE_X86_64 = (0x01000007, 3)
_CPU_TYPE_ARM64 = (0x0100000C, 0)
_MH_DYLIB = 0x6
_LC_SEGMENT_64 = 0x19
_LC_ID_DYLIB = 0xD
_PAGE = 0x1000


def _macho_slice(install_name, cpu=_CPU_TYPE_X86_64):
    commands = [
        struct.pack("<II16sQQQQiiII", _LC_SEGMENT_64, 72, b"__TEXT",
                    0, _PAGE, 0, _PAGE, 5, 5, 0, 0),
    ]
    if install_name is not None:
        name = install_name.encode() + b"\0"
        cmdsize = 24 + len(name)
        cmdsize += -cmdsize % 8
        name = name.ljust(cmdsize - 24, b"\0")
        commands.append(struct.pack("<IIIIII", _LC_ID_DYLIB, cmdsize, 24, 2, 0x10000, 0x10000) + name)

    body = b"".join(commands)
    header = struct.pack("<IiiIIIII", _MH_MAGIC_64, cpu[0], cpu[1], _MH_DYLIB,
                         len(commands), len(body), 0, 0)
    return (header + body).ljust(_PAGE, b"\0")


def _write(dest, data):
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    with open(dest, "wb") as f:
        f.write(data)
    return dest


def make_macho(dest, install_name=None):
    """Write a minimal 64-bit Mach-O dylib, with an LC_ID_DYLIB if named."""
    return _write(dest, _macho_slice(install_name))


def make_fat_macho(dest, install_name):
    """Write a universal dylib with an x86_64 and an arm64 slice."""
    slices = [_macho_slice(install_name, cpu) for cpu in (_CPU_TYPE_X86_64, _CPU_TYPE_ARM64)]
    # Fat headers are big-endian, slices start on page boundaries
    header = struct.pack(">II", _FAT_MAGIC, len(slices))
    offset = _PAGE
    for cpu, data in zip((_CPU_TYPE_X86_64, _CPU_TYPE_ARM64), slices):
        header += struct.pack(">iiIII", cpu[0], cpu[1], offset, len(data), 12)
        offset += len(data)
    return _write(dest, header.ljust(_PAGE, b"\0") + b"".join(slices))


class LiefRunner:
    """Runner that applies patch tool commands in-process through LIEF."""

    def __init__(self, root):
        self.root = str(root)
        self.commands = []

    def run(self, cmd, log_io, verbose=False):
        self.commands.append(list(cmd))
        flag = "-id" if "-id" in cmd else "--set-soname"
        soname = cmd[cmd.index(flag) + 1]
        set_soname(os.path.join(self.root, cmd[-1]), soname)
        log_io.write(f"set {soname}\n")
        return True


class ScriptedRunner:
    """Runner that records commands and reports a fixed result without patching."""

    def __init__(self, result=True):
        self.result = result
        self.commands = []

    def run(self, cmd, log_io, verbose=False):
        self.commands.append(list(cmd))
        return self.result


@pytest.fixture
def prefix(tmp_path):
    root = tmp_path / "prefix"
    (root / "lib").mkdir(parents=True)
    return root
