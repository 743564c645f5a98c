"""
Obligation Kernel

Shared foundation for tracking periodic household obligations:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- Immutable domain values (patterns, snapshots, inputs)
- SQLAlchemy persistence models
"""

__version__ = "0.1.0"
