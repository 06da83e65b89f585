import pytest

from parallelzone.binary import BinaryBuffer
from parallelzone.commpp import CommPP, Communicator, ProcessGroup


def test_null_commpp_has_no_size_or_rank():
    null = CommPP()
    assert null.size == 0
    assert null.me is None
    assert null.comm is None
    assert null.null


def test_null_commpp_collectives_raise():
    with pytest.raises(RuntimeError):
        CommPP().gather(b"ab")
    with pytest.raises(RuntimeError):
        CommPP().gatherv(b"ab", 0)
    with pytest.raises(RuntimeError):
        CommPP().gather_into(b"ab", bytearray(2))


def test_size_and_rank_cached_from_communicator():
    group = ProcessGroup(4)
    comm = CommPP(group.communicator(2))
    assert comm.size == 4
    assert comm.me == 2


def test_communicator_rejects_bad_rank():
    with pytest.raises(ValueError):
        ProcessGroup(2).communicator(2)


def test_process_group_rejects_empty():
    with pytest.raises(ValueError):
        ProcessGroup(0)


def test_equality():
    group = ProcessGroup(2)
    other = ProcessGroup(2)
    a = CommPP(group.communicator(0))
    assert a == CommPP(group.communicator(0))
    assert a == CommPP(group.communicator(1))
    assert a != CommPP(other.communicator(0))
    assert a != CommPP()
    assert CommPP() == CommPP()


def test_communicator_compare():
    group = ProcessGroup(3)
    assert group.communicator(0).compare(group.communicator(2))
    assert not group.communicator(0).compare(ProcessGroup(3).communicator(0))


def test_copy_and_swap():
    group = ProcessGroup(2)
    a = CommPP(group.communicator(1))
    copied = a.copy()
    assert copied == a
    assert copied.me == 1
    null = CommPP()
    a.swap(null)
    assert a.null
    assert null.me == 1


def test_single_rank_gather_without_threads():
    comm = CommPP(ProcessGroup(1).communicator(0))
    assert comm.gather(b"\x01\x02") == BinaryBuffer(b"\x01\x02")


def test_allgather_every_rank_gets_result():
    group = ProcessGroup(3)
    results = group.run(lambda c: CommPP(c).gather(bytes([c.rank, c.rank + 10])))
    expected = BinaryBuffer(bytes([0, 10, 1, 11, 2, 12]))
    assert results == [expected, expected, expected]


def test_gather_to_root_only_root_gets_result():
    group = ProcessGroup(3)
    results = group.run(lambda c: CommPP(c).gather(bytes([c.rank]), 1))
    assert results[0] is None
    assert results[2] is None
    assert results[1] == BinaryBuffer(bytes([0, 1, 2]))


def test_gather_accepts_buffers():
    group = ProcessGroup(2)
    results = group.run(
        lambda c: CommPP(c).gather(BinaryBuffer(bytes([c.rank + 5])), 0)
    )
    assert results[0] == BinaryBuffer(bytes([5, 6]))
    assert results[1] is None


def test_gather_into_user_buffer():
    group = ProcessGroup(2)

    def work(c):
        out = bytearray(4)
        CommPP(c).gather_into(bytes([c.rank, 9]), out)
        return bytes(out)

    assert group.run(work) == [bytes([0, 9, 1, 9])] * 2


def test_gather_into_larger_buffer_keeps_tail():
    group = ProcessGroup(2)

    def work(c):
        out = bytearray(b"\xff" * 3)
        CommPP(c).gather_into(bytes([c.rank]), out, 0)
        return bytes(out)

    results = group.run(work)
    assert results[0] == bytes([0, 1, 255])
    assert results[1] == b"\xff\xff\xff"


def test_gather_into_too_small_buffer_raises():
    group = ProcessGroup(2)
    with pytest.raises(RuntimeError, match="not large enough"):
        group.run(lambda c: CommPP(c).gather_into(b"ab", bytearray(3)))


def test_gather_mismatched_sizes_raise():
    group = ProcessGroup(2)
    with pytest.raises(ValueError):
        group.run(lambda c: CommPP(c).gather(b"x" * (c.rank + 1)))


def test_gather_bad_root_raises():
    comm = CommPP(ProcessGroup(1).communicator(0))
    with pytest.raises(ValueError):
        comm.gather(b"a", 3)


def test_gatherv_allgather():
    group = ProcessGroup(3)
    results = group.run(lambda c: CommPP(c).gatherv(bytes([c.rank]) * c.rank))
    expected = (BinaryBuffer(bytes([1, 2, 2])), [0, 1, 2])
    assert results == [expected] * 3


def test_gatherv_to_root():
    group = ProcessGroup(3)
    results = group.run(lambda c: CommPP(c).gatherv(b"ab"[: c.rank], 2))
    assert results[0] is None
    assert results[1] is None
    buffer, sizes = results[2]
    assert bytes(buffer) == b"aab"
    assert sizes == [0, 1, 2]


def test_run_reraises_first_genuine_error():
    group = ProcessGroup(3)

    def work(c):
        if c.rank == 1:
            raise KeyError("boom")
        return CommPP(c).gather(b"a")

    with pytest.raises(KeyError):
        group.run(work)


def test_group_reusable_after_failure():
    group = ProcessGroup(2)
    with pytest.raises(ZeroDivisionError):
        group.run(lambda c: 1 / 0 if c.rank == 0 else CommPP(c).gather(b"a"))
    assert group.run(lambda c: c.rank * 2) == [0, 2]


def test_communicator_equality():
    group = ProcessGroup(2)
    assert group.communicator(1) == Communicator(group, 1)
    assert group.communicator(0) != group.communicator(1)