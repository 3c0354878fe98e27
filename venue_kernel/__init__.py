"""
Venue Kernel

Pure domain layer for the venue ledger and settlement engine:
- Append-only ledger entries with Decimal amounts
- Typed exceptions carrying machine-readable codes
- Structured JSON logging
- Injectable clock for deterministic timestamps
- Boundary normalization of caller-supplied records
"""

__version__ = "0.1.0"
