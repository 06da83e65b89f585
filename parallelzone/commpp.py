"""Collective byte exchanges among the ranks of a process group.

A :class:`ProcessGroup` stands for a fixed set of ranks running together in
one interpreter, one thread per rank.  Each rank talks to the others through
its own :class:`Communicator`.  :class:`CommPP` wraps a communicator, caches
its rank and size, and offers the gather family of operations on raw bytes.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Any

from parallelzone.binary import BinaryBuffer, BinaryView, ConstBinaryView

_BARRIER_TIMEOUT = 60.0


class CollectiveAborted(RuntimeError):
    """Raised on a rank whose collective operation was abandoned by another rank."""


class ProcessGroup:
    """A fixed number of ranks that take part in collective operations together."""

    def __init__(self, size: int) -> None:
        if isinstance(size, bool) or not isinstance(size, int) or size < 1:
            raise ValueError(f"a process group needs at least one rank, got {size!r}")
        self.size = size
        self._reset()

    def _reset(self) -> None:
        self._barrier = threading.Barrier(self.size, timeout=_BARRIER_TIMEOUT)
        self._slots: list[Any] = [None] * self.size

    def communicator(self, rank: int) -> Communicator:
        """The communicator through which ``rank`` takes part in this group."""
        return Communicator(self, rank)

    def _exchange(self, rank: int, payload: Any) -> list[Any]:
        """Deposit ``payload`` for ``rank`` and return every rank's payload."""
        self._slots[rank] = payload
        try:
            self._barrier.wait()
            gathered = list(self._slots)
            self._barrier.wait()
        except threading.BrokenBarrierError:
            raise CollectiveAborted(
                "a collective operation was abandoned by another rank"
            ) from None
        return gathered

    def run(self, fn: Callable[[Communicator], Any]) -> list[Any]:
        """Run ``fn`` once per rank, concurrently, and return results by rank.

        If any rank raises, the collectives of the others are aborted and the
        first genuine error (by rank order) is re-raised.
        """
        self._reset()
        results: list[Any] = [None] * self.size
        errors: list[BaseException | None] = [None] * self.size

        def worker(rank: int) -> None:
            try:
                results[rank] = fn(self.communicator(rank))
            except BaseException as exc:  # noqa: BLE001 - re-raised below
                errors[rank] = exc
                self._barrier.abort()

        threads = [
            threading.Thread(target=worker, args=(rank,), daemon=True)
            for rank in range(self.size)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        raised = [exc for exc in errors if exc is not None]
        if raised:
            genuine = [exc for exc in raised if not isinstance(exc, CollectiveAborted)]
            raise (genuine or raised)[0]
        return results

    def __repr__(self) -> str:
        return f"ProcessGroup(size={self.size})"


class Communicator:
    """One rank's handle on a :class:`ProcessGroup`."""

    def __init__(self, group: ProcessGroup, rank: int) -> None:
        if not 0 <= rank < group.size:
            raise ValueError(f"rank {rank} is outside a group of size {group.size}")
        self.group = group
        self.rank = rank

    @property
    def size(self) -> int:
        return self.group.size

    def compare(self, other: Communicator) -> bool:
        """True if ``other`` is a handle on the very same group."""
        return isinstance(other, Communicator) and other.group is self.group

    def _exchange(self, payload: Any) -> list[Any]:
        return self.group._exchange(self.rank, payload)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Communicator):
            return NotImplemented
        return self.group is other.group and self.rank == other.rank

    def __hash__(self) -> int:
        return hash((id(self.group), self.rank))

    def __repr__(self) -> str:
        return f"Communicator(rank={self.rank}, size={self.size})"


class CommPP:
    """Gather operations on raw bytes over a communicator.

    A CommPP built without a communicator is null: it has size 0, no rank,
    and every collective on it raises :class:`RuntimeError`.
    """

    def __init__(self, comm: Communicator | None = None) -> None:
        self._comm = comm

    @property
    def null(self) -> bool:
        return self._comm is None

    @property
    def comm(self) -> Communicator | None:
        return self._comm

    @property
    def size(self) -> int:
        return self._comm.size if self._comm is not None else 0

    @property
    def me(self) -> int | None:
        """The rank of the current process, or None for a null CommPP."""
        return self._comm.rank if self._comm is not None else None

    def copy(self) -> CommPP:
        return CommPP(self._comm)

    def __copy__(self) -> CommPP:
        return self.copy()

    def swap(self, other: CommPP) -> None:
        self._comm, other._comm = other._comm, self._comm

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommPP):
            return NotImplemented
        if (self._comm is None) != (other._comm is None):
            return False
        if self._comm is None:
            return True
        return self._comm.compare(other._comm)

    def __repr__(self) -> str:
        if self._comm is None:
            return "CommPP(null)"
        return f"CommPP(me={self.me}, size={self.size})"

    # -------------------------------------------------------------------------
    # -- Collectives
    # -------------------------------------------------------------------------

    def _require_comm(self) -> Communicator:
        if self._comm is None:
            raise RuntimeError("CommPP does not have a communicator.")
        return self._comm

    def _is_root(self, root: int | None) -> bool:
        if root is not None and not 0 <= root < self.size:
            raise ValueError(f"root {root} is outside a group of size {self.size}")
        return root is None or self.me == root

    def gather(self, data, root: int | None = None) -> BinaryBuffer | None:
        """Concatenate equal-length byte blocks from every rank, in rank order.

        With ``root`` set only that rank receives the result and the others
        get None; without it every rank receives the result.
        """
        self._require_comm()
        am_i_root = self._is_root(root)
        n_in = len(ConstBinaryView(data))
        buffer = BinaryBuffer(self.size * n_in if am_i_root else 0)
        self.gather_into(data, buffer, root)
        return buffer if am_i_root else None

    def gather_into(self, data, out_buffer, root: int | None = None) -> None:
        """Like :meth:`gather`, but writes into the caller's ``out_buffer``.

        ``out_buffer`` must hold at least ``len(data) * size`` bytes on every
        rank that receives the result; other ranks may pass None.
        """
        comm = self._require_comm()
        am_i_root = self._is_root(root)
        payload = bytes(ConstBinaryView(data))
        contributions = comm._exchange(payload)

        lengths = {len(block) for block in contributions}
        if len(lengths) > 1:
            raise ValueError(
                "every rank must send the same number of bytes to gather; "
                "use gatherv for blocks of differing length"
            )
        if not am_i_root:
            return

        view = BinaryView(out_buffer)
        total = len(payload) * self.size
        if len(view) < total:
            raise RuntimeError("The provided buffer is not large enough...")
        view[0:total] = b"".join(contributions)

    def gatherv(
        self, data, root: int | None = None
    ) -> tuple[BinaryBuffer, list[int]] | None:
        """Concatenate byte blocks of any length from every rank, in rank order.

        Returns the concatenated bytes and the number of bytes each rank sent,
        on the receiving ranks; None elsewhere.
        """
        comm = self._require_comm()
        am_i_root = self._is_root(root)
        contributions = comm._exchange(bytes(ConstBinaryView(data)))
        if not am_i_root:
            return None
        sizes = [len(block) for block in contributions]
        return BinaryBuffer(b"".join(contributions)), sizes