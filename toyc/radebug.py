"""Text reports describing liveness and register allocation of IR functions."""

from __future__ import annotations

import io
from typing import Iterable, List

from toyc.ir import BasicBlock, Function, Module, opcode_to_string
from toyc.regalloc import AllocationResult, LinearScanAllocator, RegInfo

_WIDTH = 60
_FIRST_ARG_REG = 10
_LAST_ARG_REG = 17


def _separator(char: str = "=", width: int = _WIDTH) -> str:
    return char * width + "\n"


def _header(title: str) -> str:
    return "\n" + _separator() + title + "\n" + _separator()


def _vreg_set(values: Iterable[int]) -> str:
    return "{" + ", ".join(f"%{v}" for v in sorted(values)) + "}"


def _format_block(block: BasicBlock) -> List[str]:
    lines = [
        f"\n--- Block {block.name} (ID: {block.id}) ---\n",
        f"  instructions: {len(block.insts)}\n",
        "  successors: " + "".join(f"{s.name} " for s in block.succs) + "\n",
        "  predecessors: " + "".join(f"{p.name} " for p in block.preds) + "\n",
        "  instruction list:\n",
    ]
    for inst in block.insts:
        text = f"    [{inst.index}] "
        defined = inst.def_reg()
        if defined >= 0:
            text += f"%{defined} = "
        text += opcode_to_string(inst.opcode)
        uses = inst.use_regs()
        if uses:
            text += "  uses={" + ", ".join(f"%{u}" for u in uses) + "}"
        if inst.is_terminator():
            text += "  [terminator]"
        lines.append(text + "\n")
    return lines


def format_function_info(function: Function) -> str:
    """Describe a function's parameters, blocks, control flow and instructions."""
    parts = [
        _header(f"Function: {function.name}  (return type: {function.return_type})"),
        "param vregs: " + "".join(f"%{v} " for v in function.param_vregs) + "\n",
        f"max vreg ID: {function.max_vreg_id}\n",
        f"block count: {len(function.blocks)}\n",
    ]
    for block in function.blocks:
        parts.extend(_format_block(block))
    return "".join(parts)


def format_liveness(function: Function) -> str:
    """Describe the def, use, live-in and live-out sets of every block."""
    parts = [_header("Liveness analysis")]
    for block in function.blocks:
        parts.append(f"Block {block.name} (ID: {block.id}):\n")
        parts.append(f"  defSet: {_vreg_set(block.def_set)}\n")
        parts.append(f"  useSet: {_vreg_set(block.use_set)}\n")
        parts.append(f"  liveIn: {_vreg_set(block.live_in)}\n")
        parts.append(f"  liveOut: {_vreg_set(block.live_out)}\n\n")
    return "".join(parts)


def format_allocation(result: AllocationResult, reg_info: RegInfo) -> str:
    """Describe where every virtual register was placed."""
    phys_count = sum(1 for phys in result.vreg_to_phys.values() if phys >= 0)
    parts = [
        _header("Allocation result"),
        f"register mappings: {len(result.vreg_to_phys)}\n",
        f"  in physical registers: {phys_count}\n",
        f"  spilled to stack: {len(result.vreg_to_stack)}\n",
        "\n--- vreg -> physical register ---\n",
    ]
    for vreg, phys in sorted(result.vreg_to_phys.items()):
        if phys >= 0:
            parts.append(f"  %{vreg} → {reg_info.reg_name(phys)}  (x{phys})\n")

    if result.vreg_to_stack:
        parts.append("\n--- vreg -> stack offset ---\n")
        for vreg, slot in sorted(result.vreg_to_stack.items()):
            if slot > 0:
                note = f"(stack parameter, s0+{slot - 4})"
            else:
                note = "(spill slot)"
            parts.append(f"  %{vreg} → slot {slot}  {note}\n")

    if result.param_vreg_to_location:
        parts.append("\n--- parameter locations ---\n")
        for vreg, loc in sorted(result.param_vreg_to_location.items()):
            if _FIRST_ARG_REG <= loc <= _LAST_ARG_REG:
                parts.append(f"  %{vreg} → {reg_info.reg_name(loc)}  (register argument)\n")
            else:
                parts.append(f"  %{vreg} → stack offset {loc}  (stack argument)\n")

    parts.append("\n--- used physical registers ---\n  ")
    parts.append("".join(f"{reg_info.reg_name(r)} " for r in result.used_phys_regs))
    parts.append("\n")

    if result.callee_saved_regs:
        parts.append("\n--- callee-saved registers to preserve ---\n  ")
        parts.append("".join(f"{reg_info.reg_name(r)} " for r in result.callee_saved_regs))
        parts.append("\n")
    return "".join(parts)


def report(module: Module) -> str:
    """Allocate every function of ``module`` and return the full debug report.

    Raises ValueError when the module holds no functions.
    """
    if module is None or not module.functions:
        raise ValueError("module holds no functions to analyse")

    reg_info = RegInfo()
    out = io.StringIO()
    for function in module.functions:
        allocator = LinearScanAllocator(reg_info, debug=True, debug_output=out)
        result = allocator.allocate(function)
        out.write(format_function_info(function))
        out.write(format_liveness(function))
        out.write(format_allocation(result, reg_info))
    out.write(_separator())
    out.write("Analysis complete\n")
    return out.getvalue()