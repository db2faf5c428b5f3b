"""Core interfaces.

Why:
- Defines contracts (Protocol) that concrete adapters implement.
- Inverts dependencies: handlers depend on the abstraction, never on httpx.
"""
