import pytest

from xvkit.mmu import (
    DPL_USER,
    KERNBASE,
    PGSIZE,
    PTE_P,
    PTE_U,
    PTE_W,
    SEG_KCODE,
    STA_R,
    STA_W,
    STA_X,
    STS_IG32,
    STS_T32A,
    STS_TG32,
    decode_segdesc,
    p2v,
    pdx,
    pgaddr,
    pgrounddown,
    pgroundup,
    pte_addr,
    pte_flags,
    ptx,
    seg,
    seg16,
    seg_asm,
    seg_null_asm,
    setgate,
    v2p,
)

ADDRESSES = [0, 0x1234, 0x00403007, KERNBASE, 0xFE000000, 0xFFFFFFFF]


@pytest.mark.parametrize("va", ADDRESSES)
def test_pgaddr_reassembles_address(va):
    assert pgaddr(pdx(va), ptx(va), va & 0xFFF) == va


@pytest.mark.parametrize("va", ADDRESSES)
def test_indexes_are_in_range(va):
    assert 0 <= pdx(va) < 1024
    assert 0 <= ptx(va) < 1024


def test_page_rounding():
    assert pgroundup(0) == 0
    assert pgroundup(1) == PGSIZE
    assert pgroundup(PGSIZE) == PGSIZE
    assert pgroundup(PGSIZE + 1) == 2 * PGSIZE
    assert pgrounddown(PGSIZE - 1) == 0
    assert pgrounddown(3 * PGSIZE + 5) == 3 * PGSIZE


def test_pte_split():
    pte = 0x00ABC000 | PTE_P | PTE_W | PTE_U
    assert pte_addr(pte) | pte_flags(pte) == pte
    assert pte_flags(pte) == PTE_P | PTE_W | PTE_U


def test_v2p_p2v_inverse():
    assert p2v(0) == KERNBASE
    for pa in (0, 0x100000, 0xDFFF000):
        assert v2p(p2v(pa)) == pa


def test_flat_segment_fields():
    d = seg(STA_X | STA_R, 0, 0xFFFFFFFF, DPL_USER)
    assert d.lim_15_0 == 0xFFFF
    assert d.lim_19_16 == 0xF
    assert d.g == 1 and d.db == 1
    assert d.dpl == DPL_USER
    assert d.type == STA_X | STA_R


def test_seg16_is_byte_granular():
    d = seg16(STS_T32A, 0x80112340, 103, 0)
    assert d.g == 0
    assert d.lim_15_0 == 103
    assert (d.base_31_24 << 24) | (d.base_23_16 << 16) | d.base_15_0 == 0x80112340


@pytest.mark.parametrize(
    "type_, base, lim",
    [(STA_X | STA_R, 0, 0xFFFFFFFF), (STA_W, 0, 0xFFFFFFFF), (STA_W, 0x12345678, 0x7FFFF000)],
)
def test_seg_asm_matches_kernel_segment(type_, base, lim):
    assert seg_asm(type_, base, lim) == seg(type_, base, lim, 0).pack()


def test_null_segment():
    assert seg_null_asm() == bytes(8)
    assert decode_segdesc(seg_null_asm()).p == 0


def test_segdesc_round_trip():
    d = seg(STA_W, 0x00C0FFEE, 0xFFFFFFFF, DPL_USER)
    assert decode_segdesc(d.pack()) == d


def test_decode_segdesc_rejects_short_data():
    with pytest.raises(ValueError):
        decode_segdesc(b"\x00" * 4)


def test_trap_and_interrupt_gates():
    trap = setgate(True, SEG_KCODE << 3, 0x80105A2C, DPL_USER)
    intr = setgate(False, SEG_KCODE << 3, 0x80105A2C, 0)
    assert trap.type == STS_TG32
    assert intr.type == STS_IG32
    assert trap.p == 1 and trap.s == 0
    assert trap.offset() == 0x80105A2C
    assert trap.cs == SEG_KCODE << 3


def test_gate_pack_layout():
    off = 0x80105A2C
    packed = setgate(False, SEG_KCODE << 3, off, 0).pack()
    assert int.from_bytes(packed[0:2], "little") == off & 0xFFFF
    assert int.from_bytes(packed[2:4], "little") == SEG_KCODE << 3
    assert int.from_bytes(packed[6:8], "little") == off >> 16