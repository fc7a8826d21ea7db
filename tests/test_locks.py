import threading

import pytest

from xvkit.locks import Cpu, LockError, SleepLock, SpinLock


def test_push_pop_nesting_restores_interrupts():
    cpu = Cpu(True)
    cpu.push_cli()
    cpu.push_cli()
    assert cpu.ncli == 2
    assert cpu.interrupts_enabled is False
    cpu.pop_cli()
    assert cpu.interrupts_enabled is False
    cpu.pop_cli()
    assert cpu.ncli == 0
    assert cpu.interrupts_enabled is True


def test_push_pop_keeps_interrupts_off():
    cpu = Cpu(False)
    cpu.push_cli()
    cpu.pop_cli()
    assert cpu.interrupts_enabled is False
    assert cpu.ncli == 0


def test_pop_errors():
    with pytest.raises(LockError):
        Cpu(True).pop_cli()
    with pytest.raises(LockError):
        Cpu(False).pop_cli()


def test_spinlock_acquire_release():
    lock = SpinLock("test")
    assert not lock.holding()
    lock.acquire()
    assert lock.holding()
    assert lock.locked
    lock.release()
    assert not lock.holding()
    assert not lock.locked


def test_double_acquire_and_bad_release():
    lock = SpinLock("test")
    with pytest.raises(LockError):
        lock.release()
    lock.acquire()
    with pytest.raises(LockError):
        lock.acquire()
    assert lock.holding()
    lock.release()
    assert not lock.locked


def test_context_manager():
    lock = SpinLock("ctx")
    with lock as held:
        assert held.holding()
    assert not lock.locked


def test_holding_is_per_thread():
    lock = SpinLock("shared")
    lock.acquire()
    seen = []
    t = threading.Thread(target=lambda: seen.append(lock.holding()))
    t.start()
    t.join()
    assert seen == [False]
    assert lock.holding()
    lock.release()


def test_spinlock_excludes_other_threads():
    lock = SpinLock("counter")
    total = 0
    held_inside = []

    def work():
        nonlocal total
        for _ in range(1000):
            with lock:
                held_inside.append(lock.holding())
                value = total
                total = value + 1

    threads = [threading.Thread(target=work) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert total == 4000
    assert len(held_inside) == 4000
    assert all(held_inside)
    assert not lock.locked
    assert not lock.holding()


def test_sleeplock_holding():
    lk = SleepLock("disk")
    lk.acquire(1)
    assert lk.holding(1)
    assert not lk.holding(2)
    assert lk.pid == 1
    lk.release()
    assert not lk.holding(1)
    assert lk.pid == 0


def test_sleeplock_blocks_until_release():
    lk = SleepLock("disk")
    lk.acquire(1)
    got = threading.Event()

    def waiter():
        lk.acquire(2)
        got.set()

    t = threading.Thread(target=waiter)
    t.start()
    assert not got.wait(0.05)
    lk.release()
    assert got.wait(2)
    t.join()
    assert lk.holding(2)
    lk.release()