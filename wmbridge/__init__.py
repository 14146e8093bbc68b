"""wmbridge - a Unix socket command bridge for window managers.

Accepts one JSON command per connection, resolves it against a hot-reloadable
TOML mapping and triggers a single side effect: a detached subprocess, a
window operation (serialized through one adapter) or a bridge operation.
The daemon runs as an asyncio service.
"""
