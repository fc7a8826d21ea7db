"""System call argument fetching and dispatch."""

from __future__ import annotations

import logging
import struct
from typing import Callable, Union

_U32 = 0xFFFFFFFF
_INT = struct.Struct("<i")

log = logging.getLogger(__name__)

Memory = Union[bytes, bytearray, memoryview]


class SyscallError(Exception):
    """Raised when a system call argument is invalid."""


class UserContext:
    """A process's user memory and saved stack pointer at a system call."""

    def __init__(self, memory: Memory, sz: int, esp: int) -> None:
        if sz > len(memory):
            raise ValueError(f"size {sz} exceeds memory of {len(memory)} bytes")
        self.memory = memory
        self.sz = sz
        self.esp = esp

    def fetch_int(self, addr: int) -> int:
        """The 32-bit integer at user address addr."""
        if addr < 0 or addr >= self.sz or addr + 4 > self.sz:
            raise SyscallError(f"integer at {addr:#x} outside process memory")
        return _INT.unpack(bytes(self.memory[addr:addr + 4]))[0]

    def fetch_str(self, addr: int) -> bytes:
        """The NUL-terminated string at user address addr, without its NUL."""
        if addr < 0 or addr >= self.sz:
            raise SyscallError(f"string at {addr:#x} outside process memory")
        raw = bytes(self.memory[addr:self.sz])
        end = raw.find(b"\0")
        if end < 0:
            raise SyscallError(f"string at {addr:#x} is not terminated")
        return raw[:end]

    def arg_int(self, n: int) -> int:
        """The nth 32-bit argument."""
        return self.fetch_int(self.esp + 4 + 4 * n)

    def arg_ptr(self, n: int, size: int) -> int:
        """The nth argument as a pointer to size bytes inside process memory."""
        addr = self.arg_int(n) & _U32
        if size < 0 or addr >= self.sz or addr + size > self.sz:
            raise SyscallError(f"block {addr:#x}+{size} outside process memory")
        return addr

    def arg_str(self, n: int) -> bytes:
        """The nth argument as a string."""
        return self.fetch_str(self.arg_int(n) & _U32)


Handler = Callable[[UserContext], int]


class SyscallTable:
    """Maps system call numbers to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[int, Handler] = {}

    def register(self, num: int, handler: Handler) -> None:
        """Install handler for system call num."""
        if num <= 0:
            raise ValueError(f"system call number must be positive, got {num}")
        self._handlers[int(num)] = handler

    def dispatch(self, num: int, ctx: UserContext) -> int:
        """Run system call num; -1 for an unknown call or a bad argument."""
        handler = self._handlers.get(num) if num > 0 else None
        if handler is None:
            log.warning("unknown sys call %d", num)
            return -1
        try:
            return handler(ctx)
        except SyscallError:
            return -1