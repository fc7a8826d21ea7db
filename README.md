# xvkit

Pure-Python models of the parts of a small x86 teaching kernel and its
user space that make sense outside real hardware:

- `xvkit.params` holds the kernel parameters, open flags (`OpenFlag`), file
  types (`FileType`), system-call numbers (`Syscall`) and trap numbers. It
  also has `Stat` and `RtcDate`, with `unpack_stat`, `open_access` and
  `syscall_name`.
- `xvkit.mmu` provides the page-table index and rounding helpers (`pdx`,
  `ptx`, `pgroundup`, `v2p`, ...) and builds segment and gate descriptors
  (`seg`, `seg16`, `setgate`, `SegDesc`, `GateDesc`).
- `xvkit.elf` parses and packs ELF file headers and program headers
  (`parse_elf_header`, `parse_program_headers`); a bad image raises
  `ElfError`.
- `xvkit.x86` packs and unpacks trap frames (`Trapframe`,
  `unpack_trapframe`).
- `xvkit.cstring` has byte-string helpers with C semantics: `memcmp`,
  `memmove`, `strcmp`, `strncmp`, `strncpy`, `safestrcpy`, `strlen`,
  `strchr`, `atoi` and `gets`.
- `xvkit.umalloc` is a first-fit free-list allocator (`Allocator`) that
  grows its arena with `sbrk`.
- `xvkit.vm` simulates two-level paging over simulated physical memory
  (`PhysicalMemory`, `PageDirectory`, `setup_kvm`).
- `xvkit.locks` models spin locks, sleep locks and nested interrupt
  disabling (`Cpu`, `SpinLock`, `SleepLock`).
- `xvkit.syscall` fetches system-call arguments from user memory with
  bounds checks and dispatches on the call number (`UserContext`,
  `SyscallTable`).
- `xvkit.shell` parses shell command lines into a command tree
  (`parse_command`, `Parser`, `cd_target`).
- `xvkit.wc` counts lines, words and bytes.

## Install

```
pip install xvkit
```

## Examples

Parse a shell line:

```python
from xvkit.shell import parse_command, PipeCmd

cmd = parse_command("cat README | grep the > out")
assert isinstance(cmd, PipeCmd)
```

Grow and copy a user address space:

```python
from xvkit.vm import PhysicalMemory, setup_kvm

memory = PhysicalMemory()
pgdir = setup_kvm(memory, data_start=0x80108000)
size = pgdir.alloc_user(0, 8192)
pgdir.copy_out(100, b"hello")
child = pgdir.copy(size)
```

Count words:

```python
from xvkit.wc import count, format_counts

print(format_counts(count(b"one two\nthree\n"), "input"))
# 2 3 14 input
```

## Command line

The package installs one command, `xvkit-wc`:

```
xvkit-wc FILE...
```

With no file names it reads standard input. For each input it prints the
line, word and byte counts followed by the name.

## What it does not do

xvkit is a set of models, not a running system. There is no scheduler,
no processes, no file system or disk, and no console. The shell module
only parses command lines into a tree; it does not run commands.
`SyscallTable` dispatches to handlers you register; no system calls are
built in.

## Tests

```
pip install xvkit[test]
pytest
```