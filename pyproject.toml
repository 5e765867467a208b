[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dwarfkit"
version = "0.1.0"
description = "Readers for DWARF debugging sections: LEB128, line tables, location lists, debug_addr and DIE trees"
requires-python = ">=3.10"
dependencies = []
keywords = ["dwarf", "debugging", "leb128", "debug_line", "loclists", "debug_addr"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Debuggers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dwarfkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
