"""RV32I register description and a linear-scan register allocator."""

from __future__ import annotations

import bisect
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional, TextIO

from toyc.ir import Function
from toyc.liveness import LiveInterval, build_intervals, run_liveness

_NUM_REGS = 32
_FIRST_ARG_REG = 10
_MAX_REG_ARGS = 8


@dataclass(frozen=True)
class PhysReg:
    """Description of one physical register."""

    id: int
    name: str
    caller_saved: bool = False
    callee_saved: bool = False
    reserved: bool = False
    priority: int = 0


# id, name, caller-saved, callee-saved, reserved, priority (lower is preferred)
_RV32I_REGS = (
    PhysReg(0, "zero", False, False, True, 999),
    PhysReg(1, "ra", False, False, True, 999),
    PhysReg(2, "sp", False, False, True, 999),
    PhysReg(3, "gp", False, False, True, 999),
    PhysReg(4, "tp", False, False, True, 999),
    PhysReg(5, "t0", True, False, True, 999),  # spill scratch
    PhysReg(6, "t1", True, False, True, 999),  # spill scratch
    PhysReg(7, "t2", True, False, False, 20),
    PhysReg(8, "s0", False, False, True, 999),  # frame pointer
    PhysReg(9, "s1", False, True, False, 50),
    PhysReg(10, "a0", True, False, False, 0),
    PhysReg(11, "a1", True, False, False, 1),
    PhysReg(12, "a2", True, False, False, 2),
    PhysReg(13, "a3", True, False, False, 3),
    PhysReg(14, "a4", True, False, False, 4),
    PhysReg(15, "a5", True, False, False, 5),
    PhysReg(16, "a6", True, False, False, 6),
    PhysReg(17, "a7", True, False, False, 7),
    PhysReg(18, "s2", False, True, False, 40),
    PhysReg(19, "s3", False, True, False, 41),
    PhysReg(20, "s4", False, True, False, 42),
    PhysReg(21, "s5", False, True, False, 43),
    PhysReg(22, "s6", False, True, False, 44),
    PhysReg(23, "s7", False, True, False, 45),
    PhysReg(24, "s8", False, True, False, 46),
    PhysReg(25, "s9", False, True, False, 47),
    PhysReg(26, "s10", False, True, False, 48),
    PhysReg(27, "s11", False, True, False, 49),
    PhysReg(28, "t3", True, False, False, 21),
    PhysReg(29, "t4", True, False, False, 22),
    PhysReg(30, "t5", True, False, False, 23),
    PhysReg(31, "t6", True, False, False, 24),
)


class RegInfo:
    """The 32 RV32I integer registers and the subset available for allocation."""

    def __init__(self):
        self.phys_regs: List[PhysReg] = list(_RV32I_REGS)
        self.allocatable_regs: List[int] = sorted(
            (reg.id for reg in self.phys_regs if not reg.reserved), key=self.preference
        )

    def preference(self, reg_id: int):
        """Sort key: lower priority first, then lower id."""
        return (self.phys_regs[reg_id].priority, reg_id)

    def is_reserved(self, reg_id: int) -> bool:
        return self.phys_regs[reg_id].reserved

    def is_caller_saved(self, reg_id: int) -> bool:
        return self.phys_regs[reg_id].caller_saved

    def is_callee_saved(self, reg_id: int) -> bool:
        return self.phys_regs[reg_id].callee_saved

    def reg_name(self, reg_id: int) -> str:
        return self.phys_regs[reg_id].name


@dataclass
class AllocationResult:
    """Outcome of allocating one function.

    ``vreg_to_stack`` holds negative offsets for spill slots and positive
    offsets for parameters passed on the stack.  The register lists are
    sorted by register number.
    """

    vreg_to_phys: Dict[int, int] = field(default_factory=dict)
    vreg_to_stack: Dict[int, int] = field(default_factory=dict)
    param_vreg_to_location: Dict[int, int] = field(default_factory=dict)
    used_phys_regs: List[int] = field(default_factory=list)
    callee_saved_regs: List[int] = field(default_factory=list)


class LinearScanAllocator:
    """Linear-scan allocation over live intervals, aware of interval holes."""

    SPILL_TEMP_REGS = (5, 6)  # t0, t1

    def __init__(
        self,
        reg_info: Optional[RegInfo] = None,
        debug: bool = False,
        debug_output: Optional[TextIO] = None,
    ):
        self.reg_info = reg_info if reg_info is not None else RegInfo()
        self.debug = debug
        self.debug_output = debug_output
        self.result = AllocationResult()
        self.intervals: Dict[int, LiveInterval] = {}
        self._used = [False] * _NUM_REGS
        self._free: set = set()
        self._spill_toggle = False
        self._allocated: set = set()
        self._active: List[LiveInterval] = []
        self._inactive: List[LiveInterval] = []
        self._next_spill_slot = 0
        self._reset_free_regs()

    # ---- public interface ------------------------------------------------

    def allocate(self, function: Function) -> AllocationResult:
        """Allocate registers for ``function`` and return the result."""
        self.result = AllocationResult()
        self._active = []
        self._inactive = []
        self._next_spill_slot = 0
        self._allocated = set()
        self._used = [False] * _NUM_REGS
        self._reset_free_regs()

        self._bind_parameters(function.param_vregs)
        run_liveness(function)
        self._number_instructions(function)
        self.intervals = build_intervals(function)

        if self.debug:
            self.dump_intervals(self.intervals)

        self._linear_scan()
        self.result.used_phys_regs = self.used_phys_regs()
        self.result.callee_saved_regs = self.callee_saved_regs()
        return self.result

    def used_phys_regs(self) -> List[int]:
        """Registers handed out so far, in ascending order."""
        return [reg for reg, used in enumerate(self._used) if used]

    def callee_saved_regs(self) -> List[int]:
        """Used registers that the function must save and restore."""
        return [reg for reg in self.used_phys_regs() if self.reg_info.is_callee_saved(reg)]

    def allocate_spill_temp_reg(self) -> int:
        """Return t0 and t1 alternately, starting with t0."""
        self._spill_toggle = not self._spill_toggle
        return self.SPILL_TEMP_REGS[0] if self._spill_toggle else self.SPILL_TEMP_REGS[1]

    def is_spill_temp_reg(self, reg_id: int) -> bool:
        return reg_id in self.SPILL_TEMP_REGS

    def dump_intervals(self, intervals: Dict[int, LiveInterval]) -> None:
        """Write every interval's ranges to the debug output."""
        out = self.debug_output if self.debug_output is not None else sys.stdout
        out.write("=== Live Intervals ===\n")
        for vreg in sorted(intervals):
            ranges = "".join(f"[{r.start}, {r.end}) " for r in intervals[vreg].ranges)
            out.write(f"  %vreg{vreg}: {ranges}\n")

    # ---- setup -----------------------------------------------------------

    def _reset_free_regs(self) -> None:
        self._free = set(self.reg_info.allocatable_regs)

    def _bind_parameters(self, param_vregs: List[int]) -> None:
        for i, vreg in enumerate(param_vregs):
            if i < _MAX_REG_ARGS:
                reg = _FIRST_ARG_REG + i
                self.result.vreg_to_phys[vreg] = reg
                self.result.param_vreg_to_location[vreg] = reg
                self._used[reg] = True
                self._free.discard(reg)
            else:
                offset = (i - _MAX_REG_ARGS + 1) * 4
                self.result.vreg_to_stack[vreg] = offset
                self.result.param_vreg_to_location[vreg] = offset
            self._allocated.add(vreg)

    @staticmethod
    def _number_instructions(function: Function) -> None:
        pos = 0
        for block in function.rpo_order:
            for inst in block.insts:
                inst.index = pos
                inst.block_id = block.id
                pos += 1

    # ---- scan ------------------------------------------------------------

    def _linear_scan(self) -> None:
        ordered = sorted(self.intervals.values(), key=lambda iv: (iv.start(), iv.vreg))
        for interval in ordered:
            self._expire_old(interval.start())
            self._update_inactive(interval.start())

            if interval.vreg in self._allocated:
                if interval.vreg in self.result.vreg_to_phys:
                    self._insert_active(interval)
                continue

            if self._free:
                self._assign_free_reg(interval)
                self._allocated.add(interval.vreg)
            else:
                self._spill_at(interval)

    def _expire_old(self, cur_start: int) -> None:
        while self._active and self._active[0].end() < cur_start:
            self._release(self._active.pop(0).phys_reg)

    def _update_inactive(self, cur_start: int) -> None:
        still_active = []
        for interval in self._active:
            if interval.in_hole(cur_start):
                self._inactive.append(interval)
            else:
                still_active.append(interval)
        self._active = still_active

        remaining = []
        for interval in self._inactive:
            if interval.end() < cur_start:
                self._release(interval.phys_reg)
            elif interval.contains(cur_start):
                self._insert_active(interval)
            else:
                remaining.append(interval)
        self._inactive = remaining

    def _assign_free_reg(self, interval: LiveInterval) -> None:
        reg = min(self._free, key=self.reg_info.preference)
        self._free.discard(reg)
        self._used[reg] = True
        interval.phys_reg = reg
        self.result.vreg_to_phys[interval.vreg] = reg
        self._insert_active(interval)

    def _spill_at(self, interval: LiveInterval) -> None:
        best_end = interval.end()
        victim: Optional[LiveInterval] = None
        victim_list: Optional[List[LiveInterval]] = None
        for pool in (self._active, self._inactive):
            for candidate in pool:
                if candidate.end() > best_end:
                    best_end = candidate.end()
                    victim = candidate
                    victim_list = pool

        if victim is None:
            interval.spill_slot = self._new_spill_slot()
            self.result.vreg_to_stack[interval.vreg] = interval.spill_slot
            return

        reg = victim.phys_reg
        victim.phys_reg = -1
        victim.spill_slot = self._new_spill_slot()
        self.result.vreg_to_phys.pop(victim.vreg, None)
        self.result.vreg_to_stack[victim.vreg] = victim.spill_slot
        victim_list.remove(victim)

        interval.phys_reg = reg
        self.result.vreg_to_phys[interval.vreg] = reg
        self._insert_active(interval)

    def _new_spill_slot(self) -> int:
        self._next_spill_slot += 1
        return -self._next_spill_slot * 4

    def _release(self, reg: int) -> None:
        if reg >= 0 and not self.reg_info.is_reserved(reg):
            self._free.add(reg)

    def _insert_active(self, interval: LiveInterval) -> None:
        ends = [iv.end() for iv in self._active]
        self._active.insert(bisect.bisect_left(ends, interval.end()), interval)