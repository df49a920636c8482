"""External collaborators: interfaces, in-memory and RPC implementations."""
