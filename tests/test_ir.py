import pytest

from toyc.ir import (
    BasicBlock,
    CmpPred,
    Function,
    Instruction,
    Module,
    Opcode,
    Operand,
    OperandKind,
    cmp_pred_to_string,
    opcode_to_string,
    string_to_arith_opcode,
    string_to_cmp_pred,
)


def _diamond():
    func = Function("f")
    entry = func.add_block(BasicBlock("entry"))
    then = func.add_block(BasicBlock("then"))
    done = func.add_block(BasicBlock("end"))
    entry.insts.append(
        Instruction.make_cond_br(Operand.vreg(1), Operand.label("then"), Operand.label("end"))
    )
    then.insts.append(Instruction.make_br(Operand.label("end")))
    done.insts.append(Instruction.make_ret_void())
    return func, entry, then, done


def test_operand_factories():
    assert Operand.none().is_none()
    reg = Operand.vreg(7)
    assert reg.is_vreg() and reg.reg_id == 7
    imm = Operand.imm(-3)
    assert imm.is_imm() and imm.imm_value == -3
    lab = Operand.label("loop")
    assert lab.is_label() and lab.label_name == "loop"
    assert Operand.bool_lit(True).bool_value is True
    assert Operand.bool_lit(False).is_bool_lit()
    assert Operand.bool_lit(False).bool_value is False
    assert Operand.vreg(2).kind is OperandKind.VREG


def test_operand_equality_is_by_value():
    assert Operand.vreg(3) == Operand.vreg(3)
    assert Operand.vreg(3) != Operand.imm(3)


@pytest.mark.parametrize("name", ["add", "sub", "mul", "sdiv", "srem"])
def test_arith_opcode_round_trip(name):
    assert opcode_to_string(string_to_arith_opcode(name)) == name


def test_unknown_arith_opcode_raises():
    with pytest.raises(ValueError):
        string_to_arith_opcode("icmp")


def test_branch_opcodes_share_mnemonic():
    assert opcode_to_string(Opcode.COND_BR) == opcode_to_string(Opcode.BR)
    assert opcode_to_string(Opcode.RET_VOID) == opcode_to_string(Opcode.RET)


@pytest.mark.parametrize("pred", list(CmpPred))
def test_cmp_pred_round_trip(pred):
    assert string_to_cmp_pred(cmp_pred_to_string(pred)) is pred


def test_cmp_pred_text():
    assert cmp_pred_to_string(CmpPred.SLT) == "slt"
    with pytest.raises(ValueError):
        string_to_cmp_pred("ult")


def test_binop_defs_and_uses():
    inst = Instruction.make_binop(
        Opcode.ADD, Operand.vreg(4), "i32", Operand.vreg(2), Operand.imm(1)
    )
    assert inst.def_reg() == 4
    assert inst.use_regs() == [2]
    assert not inst.is_terminator()


def test_store_has_no_def():
    inst = Instruction.make_store("i32", Operand.vreg(5), Operand.vreg(1))
    assert inst.def_reg() == -1
    assert inst.use_regs() == [5, 1]


def test_load_uses_pointer():
    inst = Instruction.make_load(Operand.vreg(3), "i32", Operand.vreg(1))
    assert inst.def_reg() == 3
    assert inst.use_regs() == [1]


def test_icmp_keeps_predicate():
    inst = Instruction.make_icmp(
        CmpPred.SGE, Operand.vreg(6), "i32", Operand.vreg(1), Operand.vreg(2)
    )
    assert inst.cmp_pred is CmpPred.SGE
    assert inst.opcode is Opcode.ICMP
    assert inst.use_regs() == [1, 2]


def test_call():
    inst = Instruction.make_call(
        Operand.vreg(9), "i32", "foo", [Operand.vreg(1), Operand.imm(2), Operand.vreg(3)]
    )
    assert inst.is_call()
    assert inst.callee == "foo"
    assert inst.use_regs() == [1, 3]
    assert inst.def_reg() == 9


def test_terminators_and_targets():
    br = Instruction.make_br(Operand.label("exit"))
    cbr = Instruction.make_cond_br(Operand.vreg(2), Operand.label("a"), Operand.label("b"))
    assert br.is_terminator() and cbr.is_terminator()
    assert Instruction.make_ret("i32", Operand.imm(0)).is_terminator()
    assert Instruction.make_ret_void().is_terminator()
    assert br.branch_targets() == ["exit"]
    assert cbr.branch_targets() == ["a", "b"]
    assert cbr.branch_cond_reg() == 2
    assert br.branch_cond_reg() == -1


def test_cond_br_on_literal_has_no_cond_reg():
    cbr = Instruction.make_cond_br(Operand.bool_lit(True), Operand.label("a"), Operand.label("b"))
    assert cbr.branch_cond_reg() == -1
    assert cbr.use_regs() == []


def test_positions_follow_index():
    inst = Instruction.make_ret_void()
    inst.index = 3
    assert inst.pos_use() == inst.pos_def() + 1
    assert inst.pos_def() == 2 * inst.index


def test_block_positions():
    block = BasicBlock("b")
    assert block.first_pos() == -1 and block.last_pos() == -1
    first = Instruction.make_alloca(Operand.vreg(0), "i32")
    last = Instruction.make_ret_void()
    first.index, last.index = 4, 5
    block.insts += [first, last]
    assert block.first_pos() == first.pos_def()
    assert block.last_pos() == last.pos_use()


def test_add_block_numbers_blocks():
    func, entry, then, done = _diamond()
    assert [b.id for b in func.blocks] == [0, 1, 2]
    assert func.block_map["then"] is then
    assert func.entry_block() is entry


def test_build_cfg():
    func, entry, then, done = _diamond()
    func.build_cfg()
    assert entry.succs == [then, done]
    assert then.succs == [done]
    assert done.succs == []
    assert done.preds == [entry, then]
    assert entry.preds == []


def test_build_cfg_is_repeatable():
    func, entry, then, done = _diamond()
    func.build_cfg()
    func.build_cfg()
    assert len(done.preds) == 2
    assert len(entry.succs) == 2


def test_empty_function_has_no_entry():
    assert Function("g").entry_block() is None


def test_module_defaults():
    mod = Module()
    assert mod.target_triple == "riscv32-unknown-elf"
    assert mod.name == "toyc"
    assert mod.functions == []