[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mcphub"
version = "0.1.0"
description = "Health-check and introspect MCP servers that speak JSON-RPC over stdio"
requires-python = ">=3.11"
dependencies = []
keywords = ["mcp", "json-rpc", "health-check", "introspection", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Systems Administration",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["mcphub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
