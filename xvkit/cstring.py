"""NUL-terminated byte-string and memory helpers."""

from __future__ import annotations

from typing import BinaryIO, Optional, Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _raw(s: BytesLike) -> bytes:
    if isinstance(s, str):
        return s.encode("latin-1")
    return bytes(s)


def _cstr(s: BytesLike) -> bytes:
    """The bytes of s up to, not including, the first NUL."""
    raw = _raw(s)
    end = raw.find(b"\0")
    return raw if end < 0 else raw[:end]


def _byte(c: Union[int, str, bytes]) -> int:
    if isinstance(c, int):
        return c & 0xFF
    raw = _raw(c)
    if len(raw) != 1:
        raise ValueError("expected a single character")
    return raw[0]


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Compare the first n bytes; the difference of the first unequal pair, else 0."""
    ra, rb = _raw(a), _raw(b)
    if n < 0 or n > len(ra) or n > len(rb):
        raise ValueError(f"cannot compare {n} bytes of buffers sized {len(ra)} and {len(rb)}")
    for x, y in zip(ra[:n], rb[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes inside buf from src to dst; overlapping ranges are handled."""
    if n < 0 or min(dst, src) < 0 or max(dst, src) + n > len(buf):
        raise IndexError("memmove range outside buffer")
    buf[dst:dst + n] = buf[src:src + n]
    return buf


def _compare(p: bytes, q: bytes, n: Optional[int]) -> int:
    limit = max(len(p), len(q)) + 1 if n is None else n
    for i in range(limit):
        a = p[i] if i < len(p) else 0
        b = q[i] if i < len(q) else 0
        if a != b:
            return a - b
        if a == 0:
            return 0
    return 0


def strncmp(p: BytesLike, q: BytesLike, n: int) -> int:
    """Compare at most n characters of two strings."""
    return _compare(_cstr(p), _cstr(q), n)


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two strings."""
    return _compare(_cstr(p), _cstr(q), None)


def strncpy(src: BytesLike, n: int) -> bytes:
    """The n bytes that strncpy stores: src cut to n and padded with NULs."""
    if n <= 0:
        return b""
    return _cstr(src)[:n].ljust(n, b"\0")


def safestrcpy(src: BytesLike, n: int) -> bytes:
    """Copy at most n-1 characters and always NUL-terminate."""
    if n <= 0:
        return b""
    return _cstr(src)[: n - 1] + b"\0"


def strlen(s: BytesLike) -> int:
    """Length of the string before its NUL."""
    return len(_cstr(s))


def strchr(s: BytesLike, c: Union[int, str, bytes]) -> Optional[int]:
    """Index of the first c in s before its NUL, or None."""
    target = _byte(c)
    if target == 0:
        return None
    idx = _cstr(s).find(bytes([target]))
    return None if idx < 0 else idx


def atoi(s: BytesLike) -> int:
    """Value of the leading decimal digits of s."""
    n = 0
    for ch in _cstr(s):
        if not 0x30 <= ch <= 0x39:
            break
        n = n * 10 + ch - 0x30
    return n


def gets(stream: BinaryIO, max_len: int) -> bytes:
    """Read a line of at most max_len-1 bytes, keeping its \\n or \\r."""
    line = bytearray()
    while len(line) + 1 < max_len:
        c = stream.read(1)
        if not c:
            break
        line += c
        if c in (b"\n", b"\r"):
            break
    return bytes(line)