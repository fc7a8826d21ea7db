import pytest

from xvkit.mmu import DPL_USER, FL_IF, SEG_KCODE, SEG_UCODE, SEG_UDATA
from xvkit.params import T_IRQ0, T_SYSCALL, IRQ_TIMER, Syscall
from xvkit.x86 import Trapframe, unpack_trapframe


def _user_frame():
    return Trapframe(
        eax=Syscall.WRITE,
        trapno=T_SYSCALL,
        eip=0x1F4,
        cs=(SEG_UCODE << 3) | DPL_USER,
        eflags=FL_IF,
        esp=0x2FF0,
        ss=(SEG_UDATA << 3) | DPL_USER,
        ds=(SEG_UDATA << 3) | DPL_USER,
    )


def test_round_trip():
    tf = _user_frame()
    assert unpack_trapframe(tf.pack()) == tf


def test_frame_size():
    assert len(Trapframe().pack()) == 76


def test_eax_is_last_pushed_register():
    packed = _user_frame().pack()
    assert int.from_bytes(packed[28:32], "little") == Syscall.WRITE


def test_from_user():
    assert _user_frame().from_user()
    kernel = Trapframe(trapno=T_IRQ0 + IRQ_TIMER, cs=SEG_KCODE << 3)
    assert not kernel.from_user()


def test_unpack_rejects_wrong_length():
    with pytest.raises(ValueError):
        unpack_trapframe(b"\x00" * 10)