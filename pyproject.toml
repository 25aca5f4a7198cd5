[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "reactornet"
version = "0.1.0"
description = "A multi-reactor TCP networking library with event loops, timers, buffers, a TCP client and server, and a minimal HTTP server"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "networking",
    "reactor",
    "event-loop",
    "tcp",
    "server",
    "client",
    "http",
    "timers",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
reactornet-echo = "reactornet.examples.echo:main"
reactornet-chat-server = "reactornet.examples.chat_server:main"

[tool.hatch.build.targets.wheel]
packages = ["reactornet"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
