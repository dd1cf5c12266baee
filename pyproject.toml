[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ethanalysis"
version = "0.1.0"
description = "Beacon chain analysis: slots, beacon node access, and stored states, blocks, deposits, balances and issuance, with validator reward estimates."
requires-python = ">=3.10"
keywords = ["ethereum", "beacon-chain", "issuance", "staking", "validators", "analytics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]
dependencies = [
    "httpx>=0.24",
    "sqlalchemy>=2.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "respx>=0.20",
]

[tool.hatch.build.targets.wheel]
packages = ["ethanalysis"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
