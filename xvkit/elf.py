"""ELF executable file and program headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

ELF_MAGIC = 0x464C457F

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4

_ELFHDR = struct.Struct("<I12sHHIIIIIHHHHHH")
_PROGHDR = struct.Struct("<8I")

ELFHDR_SIZE = _ELFHDR.size
PROGHDR_SIZE = _PROGHDR.size


class ElfError(ValueError):
    """Raised for a malformed or truncated ELF image."""


@dataclass
class ElfHeader:
    """ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = field(default=bytes(12))
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    def pack(self) -> bytes:
        """Encode the header."""
        return _ELFHDR.pack(
            self.magic,
            self.elf,
            self.type,
            self.machine,
            self.version,
            self.entry,
            self.phoff,
            self.shoff,
            self.flags,
            self.ehsize,
            self.phentsize,
            self.phnum,
            self.shentsize,
            self.shnum,
            self.shstrndx,
        )


@dataclass
class ProgramHeader:
    """ELF program section header."""

    type: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    def pack(self) -> bytes:
        """Encode the program header."""
        return _PROGHDR.pack(
            self.type,
            self.off,
            self.vaddr,
            self.paddr,
            self.filesz,
            self.memsz,
            self.flags,
            self.align,
        )


def parse_elf_header(data: bytes) -> ElfHeader:
    """Decode and check the file header at the start of data."""
    if len(data) < ELFHDR_SIZE:
        raise ElfError("image shorter than an ELF header")
    header = ElfHeader(*_ELFHDR.unpack_from(data, 0))
    if header.magic != ELF_MAGIC:
        raise ElfError(f"bad ELF magic {header.magic:#x}")
    return header


def parse_program_headers(data: bytes, header: ElfHeader) -> list[ProgramHeader]:
    """Decode the program headers the file header points at."""
    result = []
    for i in range(header.phnum):
        off = header.phoff + i * PROGHDR_SIZE
        if off + PROGHDR_SIZE > len(data):
            raise ElfError(f"program header {i} lies beyond the image")
        result.append(ProgramHeader(*_PROGHDR.unpack_from(data, off)))
    return result