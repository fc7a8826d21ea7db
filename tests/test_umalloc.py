import pytest

from xvkit.umalloc import HEADER_SIZE, MIN_UNITS, Allocator


def test_first_malloc_grows_by_minimum():
    a = Allocator(1 << 20)
    addr = a.malloc(10)
    assert a.sbrk(0) == MIN_UNITS * HEADER_SIZE
    assert addr % HEADER_SIZE == 0
    assert addr + 10 <= a.sbrk(0)


def test_blocks_do_not_overlap():
    a = Allocator(1 << 20)
    sizes = [1, 17, 100, 8, 3000]
    spans = sorted((a.malloc(n), n) for n in sizes)
    for (start, n), (nxt, _) in zip(spans, spans[1:]):
        assert start + n <= nxt - HEADER_SIZE


def test_free_all_coalesces():
    a = Allocator(1 << 20)
    addrs = [a.malloc(n) for n in (10, 200, 30, 4)]
    for addr in addrs[::-1]:
        a.free(addr)
    assert a.free_blocks() == [(0, a.sbrk(0))]


def test_freed_block_reused():
    a = Allocator(1 << 20)
    a.malloc(40)
    b = a.malloc(40)
    a.malloc(40)
    a.free(b)
    assert a.malloc(40) == b


def test_large_request_grows_heap():
    a = Allocator(1 << 22)
    big = MIN_UNITS * HEADER_SIZE * 3
    addr = a.malloc(big)
    assert addr + big <= a.sbrk(0)


def test_out_of_memory():
    a = Allocator(1000)
    with pytest.raises(MemoryError):
        a.malloc(10)


def test_free_unknown_address():
    a = Allocator(1 << 20)
    a.malloc(10)
    with pytest.raises(ValueError):
        a.free(12345)


def test_sbrk_limits():
    a = Allocator(100)
    assert a.sbrk(50) == 0
    assert a.sbrk(-20) == 50
    with pytest.raises(MemoryError):
        a.sbrk(-40)
    with pytest.raises(MemoryError):
        a.sbrk(80)