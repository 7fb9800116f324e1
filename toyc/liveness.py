"""Liveness analysis and live-interval construction over IR functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from toyc.ir import BasicBlock, Function

_INT_MAX = 2**31 - 1


@dataclass
class LiveRange:
    """A closed range ``[start, end]`` of linear positions."""

    start: int
    end: int

    def overlaps(self, other: "LiveRange") -> bool:
        return not (self.end < other.start or other.end < self.start)

    def adjacent(self, other: "LiveRange") -> bool:
        return self.end + 1 == other.start or other.end + 1 == self.start


@dataclass(eq=False)
class LiveInterval:
    """Where a virtual register is live, as a sorted list of disjoint ranges."""

    vreg: int = -1
    ranges: List[LiveRange] = field(default_factory=list)
    spill_slot: int = -1
    phys_reg: int = -1

    def add_range(self, start: int, end: int) -> None:
        """Add a range, merging it with overlapping or adjacent ones."""
        new = LiveRange(start, end)
        merged: List[LiveRange] = []
        placed = False
        for r in self.ranges:
            if new.overlaps(r) or new.adjacent(r):
                new = LiveRange(min(new.start, r.start), max(new.end, r.end))
            elif not placed and new.start < r.start:
                merged.append(new)
                merged.append(r)
                placed = True
            else:
                merged.append(r)
        if not placed:
            merged.append(new)

        result: List[LiveRange] = []
        for r in merged:
            if result and (result[-1].overlaps(r) or result[-1].adjacent(r)):
                last = result[-1]
                result[-1] = LiveRange(min(last.start, r.start), max(last.end, r.end))
            else:
                result.append(r)
        self.ranges = result

    def contains(self, pos: int) -> bool:
        return any(r.start <= pos <= r.end for r in self.ranges)

    def start(self) -> int:
        return self.ranges[0].start if self.ranges else _INT_MAX

    def end(self) -> int:
        return self.ranges[-1].end if self.ranges else -1

    def empty(self) -> bool:
        return not self.ranges

    def in_hole(self, pos: int) -> bool:
        """True when ``pos`` lies between start and end but in no range."""
        return not self.empty() and self.start() <= pos <= self.end() and not self.contains(pos)


def compute_use_def_sets(function: Function) -> None:
    """Fill each block's use set (read before written) and def set."""
    for block in function.blocks:
        block.use_set = set()
        block.def_set = set()
        block.live_in = set()
        block.live_out = set()
        for inst in block.insts:
            for used in inst.use_regs():
                if used not in block.def_set:
                    block.use_set.add(used)
            defined = inst.def_reg()
            if defined != -1:
                block.def_set.add(defined)


def build_rpo(entry: Optional[BasicBlock]) -> List[BasicBlock]:
    """Reverse post-order of the blocks reachable from ``entry``."""
    if entry is None:
        return []
    order: List[BasicBlock] = []
    visited = set()
    stack = [(entry, False)]
    while stack:
        block, processed = stack.pop()
        if processed:
            order.append(block)
            continue
        if id(block) in visited:
            continue
        visited.add(id(block))
        stack.append((block, True))
        for succ in reversed(block.succs):
            if id(succ) not in visited:
                stack.append((succ, False))
    order.reverse()
    return order


def compute_liveness(function: Function) -> None:
    """Solve live-in and live-out sets over ``function.rpo_order`` to a fixed point."""
    changed = True
    while changed:
        changed = False
        for block in reversed(function.rpo_order):
            live_out = set()
            for succ in block.succs:
                live_out |= succ.live_in
            live_in = block.use_set | (live_out - block.def_set)
            if live_in != block.live_in or live_out != block.live_out:
                block.live_in = live_in
                block.live_out = live_out
                changed = True


def run_liveness(function: Function) -> None:
    """Build the CFG, the use/def sets, the RPO order and the live sets."""
    function.build_cfg()
    compute_use_def_sets(function)
    function.rpo_order = build_rpo(function.entry_block())
    compute_liveness(function)


def _interval_for(function: Function, vreg: int) -> LiveInterval:
    interval = LiveInterval(vreg)
    for block in function.rpo_order:
        live_at_start = vreg in block.live_in
        live_at_end = vreg in block.live_out

        if not live_at_start and not live_at_end:
            touched = any(
                inst.def_reg() == vreg or vreg in inst.use_regs() for inst in block.insts
            )
            if not touched:
                continue

        range_start = block.first_pos() if live_at_start else -1
        range_end = block.last_pos() if live_at_end else -1

        for inst in block.insts:
            if inst.def_reg() == vreg:
                if range_start == -1:
                    range_start = inst.pos_def()
                range_end = block.last_pos() if live_at_end else inst.pos_def()
            if vreg in inst.use_regs():
                if range_start == -1:
                    range_start = block.first_pos() if live_at_start else inst.pos_use()
                range_end = max(range_end, inst.pos_use())

        if range_start != -1 and range_end != -1:
            interval.add_range(range_start, range_end)
    return interval


def build_intervals(function: Function) -> Dict[int, LiveInterval]:
    """Live intervals of every virtual register that is live somewhere.

    Liveness must already be computed and instructions numbered.
    """
    intervals: Dict[int, LiveInterval] = {}
    for vreg in range(function.max_vreg_id + 1):
        interval = _interval_for(function, vreg)
        if not interval.empty():
            intervals[vreg] = interval
    return intervals