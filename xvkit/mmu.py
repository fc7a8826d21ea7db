"""x86 paging arithmetic, memory layout and segment/gate descriptors."""

from __future__ import annotations

from dataclasses import dataclass, fields

_U32 = 0xFFFFFFFF

# Eflags register.
FL_IF = 0x00000200

# Control register flags.
CR0_PE = 0x00000001
CR0_WP = 0x00010000
CR0_PG = 0x80000000
CR4_PSE = 0x00000010

# Segment selectors.
SEG_KCODE = 1
SEG_KDATA = 2
SEG_UCODE = 3
SEG_UDATA = 4
SEG_TSS = 5
NSEGS = 6

DPL_USER = 0x3

STA_X = 0x8
STA_W = 0x2
STA_R = 0x2

STS_T32A = 0x9
STS_IG32 = 0xE
STS_TG32 = 0xF

NPDENTRIES = 1024
NPTENTRIES = 1024
PGSIZE = 4096
PTXSHIFT = 12
PDXSHIFT = 22

PTE_P = 0x001
PTE_W = 0x002
PTE_U = 0x004
PTE_PS = 0x080

# Memory layout.
EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM


def pdx(va: int) -> int:
    """Page directory index of a virtual address."""
    return ((va & _U32) >> PDXSHIFT) & 0x3FF


def ptx(va: int) -> int:
    """Page table index of a virtual address."""
    return ((va & _U32) >> PTXSHIFT) & 0x3FF


def pgaddr(d: int, t: int, o: int) -> int:
    """Build a virtual address from directory index, table index and offset."""
    return ((d << PDXSHIFT) | (t << PTXSHIFT) | o) & _U32


def pgroundup(sz: int) -> int:
    """Round up to a page boundary."""
    return (sz + PGSIZE - 1) & ~(PGSIZE - 1) & _U32


def pgrounddown(a: int) -> int:
    """Round down to a page boundary."""
    return a & ~(PGSIZE - 1) & _U32


def pte_addr(pte: int) -> int:
    """Physical address held in a page table entry."""
    return pte & ~0xFFF & _U32


def pte_flags(pte: int) -> int:
    """Flag bits held in a page table entry."""
    return pte & 0xFFF


def v2p(a: int) -> int:
    """Kernel virtual address to physical address."""
    return (a - KERNBASE) & _U32


def p2v(a: int) -> int:
    """Physical address to kernel virtual address."""
    return (a + KERNBASE) & _U32


def _pack_bits(obj, widths: dict[str, int]) -> bytes:
    value = 0
    shift = 0
    for f in fields(obj):
        width = widths[f.name]
        value |= (getattr(obj, f.name) & ((1 << width) - 1)) << shift
        shift += width
    return value.to_bytes(8, "little")


def _unpack_bits(cls, widths: dict[str, int], data: bytes):
    if len(data) != 8:
        raise ValueError(f"descriptor must be 8 bytes, got {len(data)}")
    value = int.from_bytes(data, "little")
    values = {}
    for f in fields(cls):
        width = widths[f.name]
        values[f.name] = value & ((1 << width) - 1)
        value >>= width
    return cls(**values)


_SEG_WIDTHS = {
    "lim_15_0": 16,
    "base_15_0": 16,
    "base_23_16": 8,
    "type": 4,
    "s": 1,
    "dpl": 2,
    "p": 1,
    "lim_19_16": 4,
    "avl": 1,
    "rsv1": 1,
    "db": 1,
    "g": 1,
    "base_31_24": 8,
}


@dataclass
class SegDesc:
    """Segment descriptor with its bit fields."""

    lim_15_0: int = 0
    base_15_0: int = 0
    base_23_16: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    lim_19_16: int = 0
    avl: int = 0
    rsv1: int = 0
    db: int = 0
    g: int = 0
    base_31_24: int = 0

    def pack(self) -> bytes:
        """Encode as the 8-byte hardware descriptor."""
        return _pack_bits(self, _SEG_WIDTHS)


def decode_segdesc(data: bytes) -> SegDesc:
    """Decode an 8-byte segment descriptor."""
    return _unpack_bits(SegDesc, _SEG_WIDTHS, data)


def seg(type_: int, base: int, lim: int, dpl: int) -> SegDesc:
    """Normal segment with 4K granularity and 32-bit operands."""
    base &= _U32
    lim &= _U32
    return SegDesc(
        (lim >> 12) & 0xFFFF,
        base & 0xFFFF,
        (base >> 16) & 0xFF,
        type_ & 0xF,
        1,
        dpl & 0x3,
        1,
        (lim >> 28) & 0xF,
        0,
        0,
        1,
        1,
        base >> 24,
    )


def seg16(type_: int, base: int, lim: int, dpl: int) -> SegDesc:
    """Byte-granular segment, as used for the task state segment."""
    base &= _U32
    lim &= _U32
    return SegDesc(
        lim & 0xFFFF,
        base & 0xFFFF,
        (base >> 16) & 0xFF,
        type_ & 0xF,
        1,
        dpl & 0x3,
        1,
        (lim >> 16) & 0xF,
        0,
        0,
        1,
        0,
        base >> 24,
    )


def seg_asm(type_: int, base: int, lim: int) -> bytes:
    """Bytes of a boot-time segment descriptor."""
    return bytes(
        [
            (lim >> 12) & 0xFF,
            (lim >> 20) & 0xFF,
            base & 0xFF,
            (base >> 8) & 0xFF,
            (base >> 16) & 0xFF,
            0x90 | type_,
            0xC0 | ((lim >> 28) & 0xF),
            (base >> 24) & 0xFF,
        ]
    )


def seg_null_asm() -> bytes:
    """Bytes of the null segment descriptor."""
    return bytes(8)


_GATE_WIDTHS = {
    "off_15_0": 16,
    "cs": 16,
    "args": 5,
    "rsv1": 3,
    "type": 4,
    "s": 1,
    "dpl": 2,
    "p": 1,
    "off_31_16": 16,
}


@dataclass
class GateDesc:
    """Interrupt or trap gate descriptor."""

    off_15_0: int = 0
    cs: int = 0
    args: int = 0
    rsv1: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    off_31_16: int = 0

    def pack(self) -> bytes:
        """Encode as the 8-byte hardware descriptor."""
        return _pack_bits(self, _GATE_WIDTHS)

    def offset(self) -> int:
        """Full handler offset."""
        return (self.off_31_16 << 16) | self.off_15_0


def setgate(istrap: bool, sel: int, off: int, dpl: int) -> GateDesc:
    """Interrupt gate, or trap gate when istrap is set."""
    off &= _U32
    return GateDesc(
        off_15_0=off & 0xFFFF,
        cs=sel & 0xFFFF,
        args=0,
        rsv1=0,
        type=STS_TG32 if istrap else STS_IG32,
        s=0,
        dpl=dpl & 0x3,
        p=1,
        off_31_16=off >> 16,
    )