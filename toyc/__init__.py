"""ToyC syntax tree, LLVM-style IR, liveness analysis and linear-scan register allocation for RV32I."""

__version__ = "0.1.0"