[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tarsrpc"
version = "0.1.0"
description = "Building blocks for TARS-style RPC services: the tagged binary codec, call messages, filters, admin commands, endpoint health and selection, and HTTP request statistics."
requires-python = ">=3.10"
dependencies = []
keywords = ["rpc", "tars", "codec", "serialization", "load-balancing", "wsgi"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Object Brokering",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Middleware",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tarsrpc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
