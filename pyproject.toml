[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toyc"
version = "0.1.0"
description = "Syntax tree, LLVM-style IR, liveness analysis and linear-scan register allocation for RV32I, for a small C subset"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compiler",
    "risc-v",
    "rv32",
    "register-allocation",
    "linear-scan",
    "liveness",
    "intermediate-representation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["toyc"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
