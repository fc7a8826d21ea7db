"""Two-level x86 page tables kept in simulated physical memory."""

from __future__ import annotations

import struct
from typing import Optional

from xvkit.mmu import (
    DEVSPACE,
    EXTMEM,
    KERNBASE,
    KERNLINK,
    NPDENTRIES,
    PGSIZE,
    PHYSTOP,
    PTE_P,
    PTE_U,
    PTE_W,
    p2v,
    pdx,
    pgaddr,
    pgrounddown,
    pgroundup,
    pte_addr,
    pte_flags,
    ptx,
)

_U32 = 0xFFFFFFFF
_WORD = struct.Struct("<I")
_PAGE_MASK = ~(PGSIZE - 1)


class VmError(Exception):
    """Raised for an invalid page-table or memory operation."""


class OutOfMemory(VmError, MemoryError):
    """Raised when no physical page is left."""


class PhysicalMemory:
    """Page-granular physical memory with a free-page allocator."""

    def __init__(self, limit: int = PHYSTOP) -> None:
        self.limit = pgrounddown(limit)
        self._pages: dict[int, bytearray] = {}
        # Page 0 is never handed out; the highest page comes out first.
        self._free = list(range(PGSIZE, self.limit, PGSIZE))
        self._allocated: set[int] = set()

    def kalloc(self) -> int:
        """Take a free page and return its physical address."""
        if not self._free:
            raise OutOfMemory("out of physical pages")
        pa = self._free.pop()
        self._allocated.add(pa)
        return pa

    def kfree(self, pa: int) -> None:
        """Return a page obtained from kalloc."""
        if pa % PGSIZE or pa not in self._allocated:
            raise VmError(f"kfree: {pa:#x} is not an allocated page")
        self._allocated.remove(pa)
        self._free.append(pa)

    def free_pages(self) -> int:
        """Number of pages available to kalloc."""
        return len(self._free)

    def _check(self, pa: int, n: int) -> None:
        if pa < 0 or n < 0 or pa + n > self.limit:
            raise VmError(f"physical range {pa:#x}+{n} outside memory")

    def read(self, pa: int, n: int) -> bytes:
        """Read n bytes starting at physical address pa."""
        self._check(pa, n)
        out = bytearray()
        while n > 0:
            base = pa & _PAGE_MASK
            off = pa - base
            k = min(n, PGSIZE - off)
            page = self._pages.get(base)
            out += page[off:off + k] if page is not None else bytes(k)
            pa += k
            n -= k
        return bytes(out)

    def write(self, pa: int, data: bytes) -> None:
        """Write data starting at physical address pa."""
        data = bytes(data)
        self._check(pa, len(data))
        pos = 0
        while pos < len(data):
            base = pa & _PAGE_MASK
            off = pa - base
            k = min(len(data) - pos, PGSIZE - off)
            page = self._pages.setdefault(base, bytearray(PGSIZE))
            page[off:off + k] = data[pos:pos + k]
            pa += k
            pos += k

    def _zero(self, pa: int) -> None:
        self._pages.pop(pa & _PAGE_MASK, None)

    def _word(self, pa: int) -> int:
        page = self._pages.get(pa & _PAGE_MASK)
        if page is None:
            return 0
        return _WORD.unpack_from(page, pa & (PGSIZE - 1))[0]

    def _set_word(self, pa: int, value: int) -> None:
        base = pa & _PAGE_MASK
        page = self._pages.get(base)
        if page is None:
            page = self._pages[base] = bytearray(PGSIZE)
        _WORD.pack_into(page, pa - base, value & _U32)


class PageDirectory:
    """A page directory and the page tables below it."""

    def __init__(self, memory: PhysicalMemory) -> None:
        self.memory = memory
        self.pa = memory.kalloc()
        memory._zero(self.pa)
        self.kernel_data: Optional[int] = None
        self._freed = False

    def walk(self, va: int, alloc: bool = False) -> Optional[int]:
        """Physical address of the PTE for va, creating its page table if alloc."""
        mem = self.memory
        pde_at = self.pa + 4 * pdx(va)
        pde = mem._word(pde_at)
        if pde & PTE_P:
            pgtab = pte_addr(pde)
        else:
            if not alloc:
                return None
            pgtab = mem.kalloc()
            mem._zero(pgtab)
            mem._set_word(pde_at, pgtab | PTE_P | PTE_W | PTE_U)
        return pgtab + 4 * ptx(va)

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map [va, va+size) onto physical memory starting at pa."""
        if size <= 0:
            raise ValueError("mapping size must be positive")
        mem = self.memory
        a = pgrounddown(va)
        last = pgrounddown((va + size - 1) & _U32)
        while True:
            pte = self.walk(a, True)
            if mem._word(pte) & PTE_P:
                raise VmError(f"remap at {a:#x}")
            mem._set_word(pte, pa | perm | PTE_P)
            if a == last:
                break
            a = (a + PGSIZE) & _U32
            pa = (pa + PGSIZE) & _U32

    def init_user(self, code: bytes) -> None:
        """Load code, smaller than a page, at user address 0."""
        if len(code) >= PGSIZE:
            raise VmError("inituvm: more than a page")
        page = self.memory.kalloc()
        self.memory._zero(page)
        self.map_pages(0, PGSIZE, page, PTE_W | PTE_U)
        self.memory.write(page, code)

    def load(self, addr: int, data: bytes, offset: int, sz: int) -> None:
        """Copy sz bytes of data from offset into the mapped pages at addr."""
        if addr % PGSIZE:
            raise VmError("loaduvm: addr must be page aligned")
        mem = self.memory
        for i in range(0, sz, PGSIZE):
            pte = self.walk(addr + i, False)
            if pte is None:
                raise VmError("loaduvm: address should exist")
            n = min(sz - i, PGSIZE)
            chunk = data[offset + i:offset + i + n]
            if len(chunk) != n:
                raise VmError(f"loaduvm: short read at offset {offset + i}")
            mem.write(pte_addr(mem._word(pte)), chunk)

    def alloc_user(self, oldsz: int, newsz: int) -> int:
        """Grow user memory from oldsz to newsz; returns the new size."""
        if newsz >= KERNBASE:
            raise VmError(f"size {newsz:#x} reaches kernel space")
        if newsz < oldsz:
            return oldsz
        mem = self.memory
        for a in range(pgroundup(oldsz), newsz, PGSIZE):
            try:
                page = mem.kalloc()
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                raise
            mem._zero(page)
            try:
                self.map_pages(a, PGSIZE, page, PTE_W | PTE_U)
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                mem.kfree(page)
                raise
        return newsz

    def dealloc_user(self, oldsz: int, newsz: int) -> int:
        """Shrink user memory from oldsz to newsz; returns the new size."""
        if newsz >= oldsz:
            return oldsz
        mem = self.memory
        a = pgroundup(newsz)
        while a < oldsz:
            pte = self.walk(a, False)
            if pte is None:
                a = pgaddr(pdx(a) + 1, 0, 0) - PGSIZE
            else:
                entry = mem._word(pte)
                if entry & PTE_P:
                    pa = pte_addr(entry)
                    if pa == 0:
                        raise VmError("kfree")
                    mem.kfree(pa)
                    mem._set_word(pte, 0)
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Free all user pages, the page tables and the directory."""
        if self._freed:
            raise VmError("freevm: no pgdir")
        mem = self.memory
        self.dealloc_user(KERNBASE, 0)
        for i in range(NPDENTRIES):
            entry = mem._word(self.pa + 4 * i)
            if entry & PTE_P:
                mem.kfree(pte_addr(entry))
        mem.kfree(self.pa)
        self._freed = True

    def clear_pte_user(self, uva: int) -> None:
        """Make the page at uva inaccessible to user code."""
        pte = self.walk(uva, False)
        if pte is None:
            raise VmError("clearpteu")
        self.memory._set_word(pte, self.memory._word(pte) & ~PTE_U)

    def copy(self, sz: int) -> "PageDirectory":
        """A new directory holding a copy of the first sz bytes of user memory."""
        mem = self.memory
        if self.kernel_data is not None:
            child = setup_kvm(mem, self.kernel_data)
        else:
            child = PageDirectory(mem)
        try:
            for i in range(0, sz, PGSIZE):
                pte = self.walk(i, False)
                if pte is None:
                    raise VmError("copyuvm: pte should exist")
                entry = mem._word(pte)
                if not entry & PTE_P:
                    raise VmError("copyuvm: page not present")
                page = mem.kalloc()
                mem.write(page, mem.read(pte_addr(entry), PGSIZE))
                try:
                    child.map_pages(i, PGSIZE, page, pte_flags(entry))
                except OutOfMemory:
                    mem.kfree(page)
                    raise
        except VmError:
            child.free()
            raise
        return child

    def uva_to_ka(self, uva: int) -> Optional[int]:
        """Kernel address of the user page at uva, or None if not user-accessible."""
        pte = self.walk(uva, False)
        if pte is None:
            return None
        entry = self.memory._word(pte)
        if not entry & PTE_P or not entry & PTE_U:
            return None
        return p2v(pte_addr(entry))

    def copy_out(self, va: int, data: bytes) -> None:
        """Copy data to user address va."""
        view = bytes(data)
        while view:
            va0 = pgrounddown(va)
            ka = self.uva_to_ka(va0)
            if ka is None:
                raise VmError(f"copyout: {va0:#x} is not user-accessible")
            n = min(PGSIZE - (va - va0), len(view))
            self.memory.write(pte_addr(ka - KERNBASE) + (va - va0), view[:n])
            view = view[n:]
            va = va0 + PGSIZE


def setup_kvm(memory: PhysicalMemory, data_start: int) -> PageDirectory:
    """A page directory holding the kernel mappings; data_start is the kernel data address."""
    if not KERNLINK < data_start < p2v(PHYSTOP):
        raise ValueError(f"kernel data address {data_start:#x} out of range")
    data_phys = data_start - KERNBASE
    kmap = [
        (KERNBASE, 0, EXTMEM, PTE_W),
        (KERNLINK, KERNLINK - KERNBASE, data_phys, 0),
        (data_start, data_phys, PHYSTOP, PTE_W),
        (DEVSPACE, DEVSPACE, 0, PTE_W),
    ]
    pd = PageDirectory(memory)
    pd.kernel_data = data_start
    try:
        for virt, start, end, perm in kmap:
            pd.map_pages(virt, (end - start) & _U32, start, perm)
    except VmError:
        pd.free()
        raise
    return pd