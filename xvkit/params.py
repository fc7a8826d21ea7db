"""System-wide limits, open flags, file types, system call numbers and trap numbers."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag

NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# Processor-defined traps.
T_DIVIDE = 0
T_DEBUG = 1
T_NMI = 2
T_BRKPT = 3
T_OFLOW = 4
T_BOUND = 5
T_ILLOP = 6
T_DEVICE = 7
T_DBLFLT = 8
T_TSS = 10
T_SEGNP = 11
T_STACK = 12
T_GPFLT = 13
T_PGFLT = 14
T_FPERR = 16
T_ALIGN = 17
T_MCHK = 18
T_SIMDERR = 19

T_SYSCALL = 64
T_DEFAULT = 500
T_IRQ0 = 32

IRQ_TIMER = 0
IRQ_KBD = 1
IRQ_COM1 = 4
IRQ_IDE = 14
IRQ_ERROR = 19
IRQ_SPURIOUS = 31


class OpenFlag(IntFlag):
    """Mode bits accepted by open."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


class FileType(IntEnum):
    """Kinds of inode reported by stat."""

    DIR = 1
    FILE = 2
    DEV = 3


class Syscall(IntEnum):
    """System call numbers."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    PROC_LIST = 22


_STAT_FORMAT = struct.Struct("<hxxiIhxxI")


@dataclass
class Stat:
    """File metadata as returned by fstat."""

    type: int
    dev: int
    ino: int
    nlink: int
    size: int

    def pack(self) -> bytes:
        """Encode in the in-memory layout of the stat structure."""
        return _STAT_FORMAT.pack(self.type, self.dev, self.ino, self.nlink, self.size)


def unpack_stat(data: bytes) -> Stat:
    """Decode a stat structure; raises ValueError on a wrong length."""
    if len(data) != _STAT_FORMAT.size:
        raise ValueError(
            f"stat record must be {_STAT_FORMAT.size} bytes, got {len(data)}"
        )
    return Stat(*_STAT_FORMAT.unpack(data))


@dataclass
class RtcDate:
    """Wall-clock date read from the real-time clock."""

    second: int
    minute: int
    hour: int
    day: int
    month: int
    year: int


def open_access(omode: int) -> tuple[bool, bool]:
    """Return (readable, writable) for an open mode."""
    readable = not (omode & OpenFlag.WRONLY)
    writable = bool(omode & OpenFlag.WRONLY or omode & OpenFlag.RDWR)
    return readable, writable


def syscall_name(num: int) -> str:
    """Name of a system call number; raises ValueError if unknown."""
    return Syscall(num).name.lower()