"""Spin locks with nested interrupt disabling, and sleeping locks."""

from __future__ import annotations

import threading
from typing import Optional


class LockError(RuntimeError):
    """Raised when a lock is misused."""


class Cpu:
    """Per-CPU interrupt state with nesting of disable/enable pairs."""

    def __init__(self, interrupts_enabled: bool = True) -> None:
        self.interrupts_enabled = interrupts_enabled
        self.ncli = 0
        self.intena = False

    def push_cli(self) -> None:
        """Disable interrupts, remembering whether they were on at the outermost level."""
        enabled = self.interrupts_enabled
        self.interrupts_enabled = False
        if self.ncli == 0:
            self.intena = enabled
        self.ncli += 1

    def pop_cli(self) -> None:
        """Undo one push_cli; re-enable interrupts when the outermost one is undone."""
        if self.interrupts_enabled:
            raise LockError("popcli - interruptible")
        if self.ncli == 0:
            raise LockError("popcli")
        self.ncli -= 1
        if self.ncli == 0 and self.intena:
            self.interrupts_enabled = True


_local = threading.local()


def _mycpu() -> Cpu:
    cpu = getattr(_local, "cpu", None)
    if cpu is None:
        cpu = _local.cpu = Cpu()
    return cpu


class SpinLock:
    """Mutual-exclusion lock; each thread acts as its own CPU."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.cpu: Optional[Cpu] = None
        self._mutex = threading.Lock()

    @property
    def locked(self) -> bool:
        """Whether any CPU holds the lock."""
        return self._mutex.locked()

    def acquire(self) -> None:
        """Take the lock, waiting until it is free."""
        cpu = _mycpu()
        cpu.push_cli()
        if self.holding():
            cpu.pop_cli()
            raise LockError(f"acquire {self.name}")
        self._mutex.acquire()
        self.cpu = cpu

    def release(self) -> None:
        """Give the lock up; the caller must hold it."""
        if not self.holding():
            raise LockError(f"release {self.name}")
        self.cpu = None
        self._mutex.release()
        _mycpu().pop_cli()

    def holding(self) -> bool:
        """Whether the calling CPU holds the lock."""
        cpu = _mycpu()
        cpu.push_cli()
        result = self.locked and self.cpu is cpu
        cpu.pop_cli()
        return result

    def __enter__(self) -> "SpinLock":
        self.acquire()
        return self

    def __exit__(self, *args) -> None:
        self.release()


class SleepLock:
    """Long-term lock whose waiters sleep instead of spinning."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.pid = 0
        self._locked = False
        self._cond = threading.Condition()

    @property
    def locked(self) -> bool:
        """Whether the lock is held."""
        return self._locked

    def acquire(self, pid: int) -> None:
        """Take the lock on behalf of process pid, sleeping while it is held."""
        with self._cond:
            while self._locked:
                self._cond.wait()
            self._locked = True
            self.pid = pid

    def release(self) -> None:
        """Give the lock up and wake the sleepers."""
        with self._cond:
            self._locked = False
            self.pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        """Whether process pid holds the lock."""
        with self._cond:
            return self._locked and self.pid == pid