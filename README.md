# parallelzone

Building blocks for parallel programs in Python. The package has three
modules.

## `parallelzone.logging`

- `Severity` is an ordered enum with the levels `trace`, `debug`, `info`,
  `warn`, `error` and `critical`.
- `StreamSink(name, stream=None)` writes records of the form
  `[name] [level] message` to `stream`. If `stream` is `None` it writes to
  whatever `sys.stdout` is at the time of the write. The threshold starts at
  `Severity.info`, and `set_severity` changes it. Records below the threshold
  are dropped.
- `Logger(sink=None)` has a method for each level: `trace`, `debug`, `info`,
  `warn`, `error` and `critical`. It also has `log(msg)`, which logs at info
  level, and `log(severity, msg)`. `logger << msg` is the same as `log(msg)`.
  Each of these returns the logger, so calls can be chained. A logger with no
  sink (`logger.null` is true) drops every message. `copy`, `swap` and `==`
  are provided.
- `LoggerFactory.default_global_logger(rank)` returns a logger that writes to
  standard output under the name `Rank 0` when `rank` is 0. For any other rank
  it returns a null logger.

## `parallelzone.binary`

- `BinaryBuffer(data=None)` owns a block of bytes. `data` can be an integer,
  which gives a zero-filled buffer of that size, or any bytes-like object,
  which is copied. The class supports `len`, iteration, `bytes()`, `==`,
  `swap`, `copy`, `view()` and `const_view()`.
- `BinaryView` is a writable view that does not copy the bytes it looks at.
  `ConstBinaryView` is the read-only version. Both support `len`, iteration,
  indexing, slicing, `bytes()` and `==`. `str()` gives each byte as a number
  followed by a space.
- `needs_serialized(value)` tells you whether a value must be serialized or
  can be copied as raw bytes. Raw bytes means `str`, `bytes`, `bytearray`,
  `memoryview`, `array.array`, buffers and views.
- `serialize(value)` and `deserialize(data, kind)` use a little-endian binary
  format:
  - integers are 8-byte signed values and floats are 8-byte doubles;
  - booleans take one byte;
  - strings, bytes, lists, sets and dicts carry an 8-byte length prefix;
  - tuples are fixed-length records with no prefix.

  `kind` is a type hint such as `int`, `list[str]`, `dict[str, float]` or
  `tuple[int, float, str]`.
- `make_binary_buffer(value)` turns a value into a buffer, serializing it only
  when that is needed. `from_binary_buffer(buffer, kind)` and
  `from_binary_view(view, kind)` turn the bytes back into a value. To rebuild
  an `array.array`, pass its typecode (for example `"d"`) as `kind`.

## `parallelzone.commpp`

- `ProcessGroup(size)` is a fixed set of ranks. `run(fn)` calls `fn` once per
  rank, each call in its own thread with that rank's `Communicator`, and
  returns the results in rank order. If any rank raises, the collectives on
  the other ranks are aborted (they raise `CollectiveAborted`), and the first
  real error is raised again.
- `CommPP(comm=None)` wraps a communicator and exposes `me`, `size`, `null`,
  `copy`, `swap` and `==`. It provides these collectives:
  - `gather(data, root=None)` joins equal-length blocks in rank order.
  - `gather_into(data, out_buffer, root=None)` does the same, writing into a
    buffer you supply. It raises `RuntimeError` if that buffer is too small.
  - `gatherv(data, root=None)` accepts blocks of any length and returns
    `(buffer, sizes)`.

  If you leave out `root`, every rank gets the result. If you pass a root,
  only that rank gets the result and the other ranks get `None`. Any
  collective on a null `CommPP` raises `RuntimeError`.

## Example

```python
from parallelzone.binary import from_binary_buffer, make_binary_buffer
from parallelzone.commpp import CommPP, ProcessGroup
from parallelzone.logging import LoggerFactory, Severity

log = LoggerFactory.default_global_logger(0)
log.set_severity(Severity.debug)
log.debug("starting")

buf = make_binary_buffer(["Hello", "World"])
assert from_binary_buffer(buf, list[str]) == ["Hello", "World"]

def work(comm):
    pp = CommPP(comm)
    return pp.gatherv(bytes([pp.me] * (pp.me + 1)), root=0)

results = ProcessGroup(3).run(work)
buffer, sizes = results[0]
assert bytes(buffer) == bytes([0, 1, 1, 2, 2, 2]) and sizes == [1, 2, 3]
assert results[1] is None and results[2] is None
```

## What it does not do

All ranks of a `ProcessGroup` are threads inside one interpreter. The package
does not start processes and does not talk across machines or over a network.
It does not keep track of per-rank hardware such as memory, and it has no
command-line program.

## Installation and tests

```
pip install .[test]
pytest
```