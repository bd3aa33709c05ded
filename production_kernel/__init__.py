"""
Production Kernel

An append-only inventory ledger with:
- Stock derived from movements, never stored
- Immutable movements and consumption records
- Locked-row sequences for ordering and document numbers
- Typed errors and structured JSON logging
"""

__version__ = "0.1.0"
