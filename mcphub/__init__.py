"""Health-check and introspect MCP servers that speak JSON-RPC over stdio."""

__version__ = "0.1.0"

__all__ = [
    "dashboard",
    "dispatcher",
    "health",
    "introspect",
    "protocol",
    "types",
]