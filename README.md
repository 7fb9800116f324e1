# toyc

`toyc` holds the middle of a compiler for ToyC, a small subset of C with
`int`/`void` functions, `int` locals, `if`/`else`, `while`, `break`,
`continue`, `return`, calls and the usual arithmetic, relational and
logical operators. It provides syntax tree nodes for ToyC programs, an
LLVM-style intermediate representation, liveness analysis with live
intervals, and a linear-scan register allocator for the 32 RV32I integer
registers, together with a text report of what the allocator did.

The package has no runtime dependencies.

## Modules

| Module | Purpose |
| --- | --- |
| `toyc.syntax` | Syntax tree dataclasses: `NumberExpr`, `IdentifierExpr`, `BinaryExpr`, `UnaryExpr`, `CallExpr`, `AssignStmt`, `DeclStmt`, `IfStmt`, `WhileStmt`, `BreakStmt`, `ContinueStmt`, `ReturnStmt`, `BlockStmt`, `Param`, `FuncDef` |
| `toyc.ir` | The IR: `Opcode`, `CmpPred`, `OperandKind`, `Operand`, `Instruction`, `BasicBlock`, `FuncParam`, `Function`, `Module` |
| `toyc.liveness` | `LiveRange`, `LiveInterval`, use/def sets, reverse post-order, block liveness and interval construction |
| `toyc.regalloc` | `PhysReg`, `RegInfo`, `AllocationResult` and `LinearScanAllocator` |
| `toyc.radebug` | Text reports of blocks, liveness sets and allocation results |

## Building IR

Functions are built in Python from the `Instruction` factory methods
(`make_alloca`, `make_load`, `make_store`, `make_binop`, `make_icmp`,
`make_br`, `make_cond_br`, `make_ret`, `make_ret_void`, `make_call`).
`Function.add_block` numbers a block and registers its label;
`Function.build_cfg` fills each block's `succs` and `preds` from the
branch instructions.

```python
from toyc.ir import BasicBlock, Function, Instruction, Module, Opcode, Operand

func = Function("add", return_type="i32", param_vregs=[0, 1], max_vreg_id=2)
entry = func.add_block(BasicBlock("entry"))
entry.insts.append(
    Instruction.make_binop(Opcode.ADD, Operand.vreg(2), "i32", Operand.vreg(0), Operand.vreg(1))
)
entry.insts.append(Instruction.make_ret("i32", Operand.vreg(2)))
module = Module(functions=[func])
```

`opcode_to_string`, `string_to_arith_opcode`, `cmp_pred_to_string` and
`string_to_cmp_pred` convert between enum members and their IR
mnemonics; the `string_to_*` functions raise `ValueError` for unknown
text.

## Liveness

`toyc.liveness.run_liveness(function)` builds the CFG, computes each
block's `use_set` and `def_set`, stores the reverse post-order in
`function.rpo_order` and solves `live_in`/`live_out` to a fixed point.
`build_intervals(function)` then returns a `LiveInterval` for every
virtual register that is live somewhere; it expects liveness to be
computed and instructions to be numbered (`LinearScanAllocator.allocate`
does both). A `LiveInterval` keeps sorted, disjoint ranges, merging
overlapping and adjacent ones in `add_range`, and answers `contains`,
`start`, `end`, `empty` and `in_hole`.

## Register allocation

```python
from toyc.regalloc import LinearScanAllocator, RegInfo

allocator = LinearScanAllocator(RegInfo())
result = allocator.allocate(func)
result.vreg_to_phys            # virtual register -> physical register number
result.vreg_to_stack           # virtual register -> stack offset
result.param_vreg_to_location  # parameter vreg -> register number or stack offset
result.used_phys_regs          # registers handed out, ascending
result.callee_saved_regs       # s-registers the function must save
```

- the first eight parameters are pinned to `a0`–`a7`; later ones get
  positive stack offsets 4, 8, … in the caller's frame;
- `a0`–`a7` are preferred, then `t2`–`t6`, then `s1`–`s11`;
- `t0` and `t1` are never allocated; `allocate_spill_temp_reg` hands
  them out alternately, starting with `t0`;
- intervals that enter a hole are set aside without releasing their
  register and resume when live again;
- when no register is free, the interval that ends last is spilled to a
  new 4-byte slot (offsets -4, -8, …), and if that is another interval
  its register passes to the current one.

With `debug=True`, `allocate` writes the live intervals to
`debug_output` (standard output when not given).

## Reports

`toyc.radebug.report(module)` allocates every function of the module and
returns one text report: the live intervals, each function's parameters,
blocks, successors, predecessors and numbered instructions, the liveness
sets of every block and the final assignment. It raises `ValueError`
when the module holds no functions. `format_function_info`,
`format_liveness` and `format_allocation` produce the individual
sections.

## What the package does not do

- It has no lexer or parser: it does not read ToyC source text, and the
  syntax tree classes are data only.
- It does not lower syntax trees to IR, and it does not read IR text;
  IR is built in Python as shown above.
- It does not emit assembly, lay out stack frames or insert spill code;
  it stops at the allocation result.
- It has no command-line tool.

## Tests

The tests use pytest, which the `test` extra installs.