"""Structured intermediate representation: operands, instructions, blocks, functions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional


class Opcode(Enum):
    """Operation performed by an IR instruction."""

    ALLOCA = auto()
    LOAD = auto()
    STORE = auto()
    ADD = auto()
    SUB = auto()
    MUL = auto()
    SDIV = auto()
    SREM = auto()
    ICMP = auto()
    BR = auto()
    COND_BR = auto()
    RET = auto()
    RET_VOID = auto()
    CALL = auto()


_OPCODE_TEXT = {
    Opcode.ALLOCA: "alloca",
    Opcode.LOAD: "load",
    Opcode.STORE: "store",
    Opcode.ADD: "add",
    Opcode.SUB: "sub",
    Opcode.MUL: "mul",
    Opcode.SDIV: "sdiv",
    Opcode.SREM: "srem",
    Opcode.ICMP: "icmp",
    Opcode.BR: "br",
    Opcode.COND_BR: "br",
    Opcode.RET: "ret",
    Opcode.RET_VOID: "ret",
    Opcode.CALL: "call",
}

_ARITH_OPCODES = {
    "add": Opcode.ADD,
    "sub": Opcode.SUB,
    "mul": Opcode.MUL,
    "sdiv": Opcode.SDIV,
    "srem": Opcode.SREM,
}

_TERMINATORS = frozenset({Opcode.BR, Opcode.COND_BR, Opcode.RET, Opcode.RET_VOID})


def opcode_to_string(opcode: Opcode) -> str:
    """Return the IR mnemonic of an opcode."""
    return _OPCODE_TEXT[opcode]


def string_to_arith_opcode(text: str) -> Opcode:
    """Parse an arithmetic mnemonic such as ``add`` or ``sdiv``."""
    try:
        return _ARITH_OPCODES[text]
    except KeyError:
        raise ValueError(f"unknown arithmetic opcode: {text!r}") from None


class CmpPred(Enum):
    """Predicate of an integer comparison."""

    EQ = "eq"
    NE = "ne"
    SLT = "slt"
    SGT = "sgt"
    SLE = "sle"
    SGE = "sge"


def cmp_pred_to_string(pred: CmpPred) -> str:
    """Return the IR text of a comparison predicate."""
    return pred.value


def string_to_cmp_pred(text: str) -> CmpPred:
    """Parse a comparison predicate such as ``slt``."""
    try:
        return CmpPred(text)
    except ValueError:
        raise ValueError(f"unknown comparison predicate: {text!r}") from None


class OperandKind(Enum):
    """What an operand denotes."""

    NONE = auto()
    VREG = auto()
    IMM = auto()
    LABEL = auto()
    BOOL_LIT = auto()


@dataclass(frozen=True)
class Operand:
    """An instruction operand: virtual register, immediate, label or boolean."""

    kind: OperandKind = OperandKind.NONE
    value: int = 0
    text: str = ""

    @staticmethod
    def none() -> "Operand":
        return Operand()

    @staticmethod
    def vreg(reg_id: int) -> "Operand":
        return Operand(OperandKind.VREG, reg_id)

    @staticmethod
    def imm(value: int) -> "Operand":
        return Operand(OperandKind.IMM, value)

    @staticmethod
    def label(name: str) -> "Operand":
        return Operand(OperandKind.LABEL, 0, name)

    @staticmethod
    def bool_lit(value: bool) -> "Operand":
        return Operand(OperandKind.BOOL_LIT, 1 if value else 0)

    def is_none(self) -> bool:
        return self.kind is OperandKind.NONE

    def is_vreg(self) -> bool:
        return self.kind is OperandKind.VREG

    def is_imm(self) -> bool:
        return self.kind is OperandKind.IMM

    def is_label(self) -> bool:
        return self.kind is OperandKind.LABEL

    def is_bool_lit(self) -> bool:
        return self.kind is OperandKind.BOOL_LIT

    @property
    def reg_id(self) -> int:
        return self.value

    @property
    def imm_value(self) -> int:
        return self.value

    @property
    def bool_value(self) -> bool:
        return self.value != 0

    @property
    def label_name(self) -> str:
        return self.text


@dataclass(eq=False)
class Instruction:
    """One IR instruction with its operands and position data."""

    opcode: Opcode
    type: str = ""
    dest: Operand = field(default_factory=Operand)
    ops: List[Operand] = field(default_factory=list)
    cmp_pred: CmpPred = CmpPred.EQ
    callee: str = ""
    nsw: bool = False
    align: int = 4
    index: int = -1
    block_id: int = -1

    @staticmethod
    def make_alloca(dest: Operand, type_: str, align: int = 4) -> "Instruction":
        return Instruction(Opcode.ALLOCA, type_, dest, [], align=align)

    @staticmethod
    def make_load(dest: Operand, type_: str, ptr: Operand, align: int = 4) -> "Instruction":
        return Instruction(Opcode.LOAD, type_, dest, [ptr], align=align)

    @staticmethod
    def make_store(type_: str, value: Operand, ptr: Operand, align: int = 4) -> "Instruction":
        return Instruction(Opcode.STORE, type_, Operand.none(), [value, ptr], align=align)

    @staticmethod
    def make_binop(
        opcode: Opcode, dest: Operand, type_: str, lhs: Operand, rhs: Operand
    ) -> "Instruction":
        return Instruction(opcode, type_, dest, [lhs, rhs])

    @staticmethod
    def make_icmp(
        pred: CmpPred, dest: Operand, type_: str, lhs: Operand, rhs: Operand
    ) -> "Instruction":
        return Instruction(Opcode.ICMP, type_, dest, [lhs, rhs], cmp_pred=pred)

    @staticmethod
    def make_br(target: Operand) -> "Instruction":
        return Instruction(Opcode.BR, "", Operand.none(), [target])

    @staticmethod
    def make_cond_br(
        cond: Operand, true_target: Operand, false_target: Operand
    ) -> "Instruction":
        return Instruction(Opcode.COND_BR, "i1", Operand.none(), [cond, true_target, false_target])

    @staticmethod
    def make_ret(type_: str, value: Operand) -> "Instruction":
        return Instruction(Opcode.RET, type_, Operand.none(), [value])

    @staticmethod
    def make_ret_void() -> "Instruction":
        return Instruction(Opcode.RET_VOID, "void", Operand.none(), [])

    @staticmethod
    def make_call(
        dest: Operand, ret_type: str, callee: str, args: List[Operand]
    ) -> "Instruction":
        return Instruction(Opcode.CALL, ret_type, dest, list(args), callee=callee)

    def def_reg(self) -> int:
        """Virtual register written by this instruction, or -1."""
        return self.dest.reg_id if self.dest.is_vreg() else -1

    def use_regs(self) -> List[int]:
        """Virtual registers read by this instruction, in operand order."""
        return [op.reg_id for op in self.ops if op.is_vreg()]

    def is_terminator(self) -> bool:
        return self.opcode in _TERMINATORS

    def is_call(self) -> bool:
        return self.opcode is Opcode.CALL

    def branch_targets(self) -> List[str]:
        """Labels of the blocks this instruction may jump to."""
        if self.opcode is Opcode.BR:
            return [self.ops[0].label_name]
        if self.opcode is Opcode.COND_BR:
            return [self.ops[1].label_name, self.ops[2].label_name]
        return []

    def branch_cond_reg(self) -> int:
        """Condition register of a conditional branch, or -1."""
        if self.opcode is Opcode.COND_BR and self.ops[0].is_vreg():
            return self.ops[0].reg_id
        return -1

    def pos_def(self) -> int:
        return self.index * 2

    def pos_use(self) -> int:
        return self.index * 2 + 1


@dataclass(eq=False)
class BasicBlock:
    """A labelled straight-line sequence of instructions."""

    name: str
    id: int = -1
    insts: List[Instruction] = field(default_factory=list)
    succs: List["BasicBlock"] = field(default_factory=list)
    preds: List["BasicBlock"] = field(default_factory=list)
    def_set: set = field(default_factory=set)
    use_set: set = field(default_factory=set)
    live_in: set = field(default_factory=set)
    live_out: set = field(default_factory=set)

    def first_pos(self) -> int:
        """Position of the first instruction's definition point, or -1."""
        return self.insts[0].pos_def() if self.insts else -1

    def last_pos(self) -> int:
        """Position of the last instruction's use point, or -1."""
        return self.insts[-1].pos_use() if self.insts else -1


@dataclass
class FuncParam:
    """A formal parameter of an IR function."""

    name: str
    type: str = "i32"


@dataclass(eq=False)
class Function:
    """An IR function: parameters, blocks and control-flow data."""

    name: str
    return_type: str = "i32"
    params: List[FuncParam] = field(default_factory=list)
    blocks: List[BasicBlock] = field(default_factory=list)
    block_map: Dict[str, BasicBlock] = field(default_factory=dict)
    rpo_order: List[BasicBlock] = field(default_factory=list)
    param_vregs: List[int] = field(default_factory=list)
    max_vreg_id: int = -1

    def add_block(self, block: BasicBlock) -> BasicBlock:
        """Append a block, numbering it and registering its label."""
        block.id = len(self.blocks)
        self.blocks.append(block)
        self.block_map[block.name] = block
        return block

    def build_cfg(self) -> None:
        """Compute successor and predecessor lists from branch instructions."""
        self.block_map = {block.name: block for block in self.blocks}
        for block in self.blocks:
            block.succs.clear()
            block.preds.clear()
        for block in self.blocks:
            for inst in block.insts:
                if not inst.is_terminator():
                    continue
                for target in inst.branch_targets():
                    succ = self.block_map.get(target)
                    if succ is None or any(s is succ for s in block.succs):
                        continue
                    block.succs.append(succ)
                    succ.preds.append(block)

    def entry_block(self) -> Optional[BasicBlock]:
        return self.blocks[0] if self.blocks else None


@dataclass
class Module:
    """A compilation unit holding IR functions."""

    name: str = "toyc"
    source_file: str = "toyc"
    target_triple: str = "riscv32-unknown-elf"
    functions: List[Function] = field(default_factory=list)