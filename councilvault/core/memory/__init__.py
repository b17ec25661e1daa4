"""
Memory Security Module
======================

Best-effort wiping of transient key material.

WARNING:
- Python's memory model doesn't guarantee secure erasure
- These are best-effort mitigations
"""

from councilvault.core.memory.zeroization import is_zeroed, scrubbed, secure_zero

__all__ = ["is_zeroed", "scrubbed", "secure_zero"]
