"""
Sessiongate - Session and Write-Lock Layer for a Web Control Surface

Issues cookie-carried sessions for the web UI of a background service and
serializes write access across browser connections with a lock flag that
survives restarts.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- session: Identifier issuance, cookie handling, GC, provider registry
- storage: Memory, file and Redis session backends
- lock: Lock flag protocol and durable lock records
"""

__version__ = "1.0.0"
