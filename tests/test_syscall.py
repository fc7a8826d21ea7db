import struct

import pytest

from xvkit.params import Syscall
from xvkit.syscall import SyscallError, SyscallTable, UserContext


def make_ctx():
    mem = bytearray(0x400)
    esp = 0x100
    struct.pack_into("<i", mem, esp + 4, 42)
    struct.pack_into("<i", mem, esp + 8, -5)
    struct.pack_into("<I", mem, esp + 12, 0x200)
    mem[0x200:0x206] = b"hello\0"
    return UserContext(mem, 0x300, esp)


def test_arg_int():
    ctx = make_ctx()
    assert ctx.arg_int(0) == 42
    assert ctx.arg_int(1) == -5


def test_arg_str():
    ctx = make_ctx()
    assert ctx.arg_str(2) == b"hello"


def test_arg_ptr_bounds():
    ctx = make_ctx()
    assert ctx.arg_ptr(2, 16) == 0x200
    assert ctx.arg_ptr(2, 0x100) == 0x200
    with pytest.raises(SyscallError):
        ctx.arg_ptr(2, 0x101)
    with pytest.raises(SyscallError):
        ctx.arg_ptr(2, -1)
    with pytest.raises(SyscallError):
        ctx.arg_ptr(1, 4)


def test_fetch_int_bounds():
    ctx = make_ctx()
    ctx.memory[0x2FC:0x300] = struct.pack("<i", 7)
    assert ctx.fetch_int(0x2FC) == 7
    with pytest.raises(SyscallError):
        ctx.fetch_int(0x2FD)
    with pytest.raises(SyscallError):
        ctx.fetch_int(0x300)


def test_fetch_str_must_end_inside_memory():
    ctx = make_ctx()
    ctx.memory[0x2F0:0x300] = b"x" * 16
    ctx.memory[0x300] = 0
    with pytest.raises(SyscallError):
        ctx.fetch_str(0x2F0)
    with pytest.raises(SyscallError):
        ctx.fetch_str(0x300)


def test_size_larger_than_memory():
    with pytest.raises(ValueError):
        UserContext(bytearray(16), 32, 0)


def test_dispatch_calls_handler():
    table = SyscallTable()
    table.register(Syscall.SLEEP, lambda ctx: ctx.arg_int(0) + 1)
    assert table.dispatch(Syscall.SLEEP, make_ctx()) == 43


def test_dispatch_unknown_returns_minus_one():
    table = SyscallTable()
    assert table.dispatch(Syscall.FORK, make_ctx()) == -1
    assert table.dispatch(0, make_ctx()) == -1


def test_dispatch_bad_argument_returns_minus_one():
    table = SyscallTable()
    table.register(Syscall.KILL, lambda ctx: ctx.arg_int(200))
    assert table.dispatch(Syscall.KILL, make_ctx()) == -1


def test_register_rejects_non_positive():
    with pytest.raises(ValueError):
        SyscallTable().register(0, lambda ctx: 0)