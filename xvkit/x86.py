"""Trap frame layout built on the kernel stack on entry to a trap."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from xvkit.mmu import DPL_USER

_TRAPFRAME = struct.Struct("<8IHxxHxxHxxHxxIIIHxxIIHxx")


@dataclass
class Trapframe:
    """Registers saved by the hardware and the trap entry code."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    oesp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    gs: int = 0
    fs: int = 0
    es: int = 0
    ds: int = 0
    trapno: int = 0
    err: int = 0
    eip: int = 0
    cs: int = 0
    eflags: int = 0
    esp: int = 0
    ss: int = 0

    def pack(self) -> bytes:
        """Encode in the on-stack layout."""
        return _TRAPFRAME.pack(
            self.edi,
            self.esi,
            self.ebp,
            self.oesp,
            self.ebx,
            self.edx,
            self.ecx,
            self.eax,
            self.gs,
            self.fs,
            self.es,
            self.ds,
            self.trapno,
            self.err,
            self.eip,
            self.cs,
            self.eflags,
            self.esp,
            self.ss,
        )

    def from_user(self) -> bool:
        """True if the trap came from user mode."""
        return (self.cs & 3) == DPL_USER


def unpack_trapframe(data: bytes) -> Trapframe:
    """Decode a trap frame; raises ValueError on a wrong length."""
    if len(data) != _TRAPFRAME.size:
        raise ValueError(
            f"trap frame must be {_TRAPFRAME.size} bytes, got {len(data)}"
        )
    return Trapframe(*_TRAPFRAME.unpack(data))