"""First-fit free-list allocator over a growable heap."""

from __future__ import annotations

from xvkit.mmu import KERNBASE

HEADER_SIZE = 8
MIN_UNITS = 4096
_BASE = -HEADER_SIZE


class Allocator:
    """Heap allocator that grows its arena with sbrk."""

    def __init__(self, limit: int = KERNBASE) -> None:
        self._limit = limit
        self._brk = 0
        self._next: dict[int, int] = {}
        self._size: dict[int, int] = {}
        self._allocated: set[int] = set()
        self._freep: int | None = None

    def sbrk(self, n: int) -> int:
        """Move the break by n bytes and return the old break."""
        new = self._brk + n
        if new < 0 or new > self._limit:
            raise MemoryError(f"cannot move break to {new}")
        old = self._brk
        self._brk = new
        return old

    def malloc(self, nbytes: int) -> int:
        """Allocate nbytes and return the block's address."""
        nunits = (nbytes + HEADER_SIZE - 1) // HEADER_SIZE + 1
        if self._freep is None:
            self._next[_BASE] = _BASE
            self._size[_BASE] = 0
            self._freep = _BASE
        prevp = self._freep
        p = self._next[prevp]
        while True:
            if self._size[p] >= nunits:
                if self._size[p] == nunits:
                    self._next[prevp] = self._next.pop(p)
                else:
                    self._size[p] -= nunits
                    p += self._size[p] * HEADER_SIZE
                    self._size[p] = nunits
                self._freep = prevp
                self._allocated.add(p)
                return p + HEADER_SIZE
            if p == self._freep:
                p = self._morecore(nunits)
            prevp = p
            p = self._next[p]

    def _morecore(self, nu: int) -> int:
        nu = max(nu, MIN_UNITS)
        hp = self.sbrk(nu * HEADER_SIZE)
        self._size[hp] = nu
        self._allocated.add(hp)
        self.free(hp + HEADER_SIZE)
        assert self._freep is not None
        return self._freep

    def free(self, address: int) -> None:
        """Return a block obtained from malloc to the free list."""
        bp = address - HEADER_SIZE
        if bp not in self._allocated:
            raise ValueError(f"address {address:#x} was not allocated")
        self._allocated.discard(bp)
        nxt, size = self._next, self._size
        p = self._freep
        assert p is not None
        while not (p < bp < nxt[p]):
            if p >= nxt[p] and (bp > p or bp < nxt[p]):
                break
            p = nxt[p]
        if bp + size[bp] * HEADER_SIZE == nxt[p]:
            upper = nxt[p]
            size[bp] += size.pop(upper)
            nxt[bp] = nxt.pop(upper)
        else:
            nxt[bp] = nxt[p]
        if p + size[p] * HEADER_SIZE == bp:
            size[p] += size.pop(bp)
            nxt[p] = nxt.pop(bp)
        else:
            nxt[p] = bp
        self._freep = p

    def free_blocks(self) -> list[tuple[int, int]]:
        """Free blocks as (header address, size in bytes), in address order."""
        if self._freep is None:
            return []
        blocks = []
        p = self._next[_BASE]
        while p != _BASE:
            blocks.append((p, self._size[p] * HEADER_SIZE))
            p = self._next[p]
        return blocks