"""
Report Kernel

Shared foundation for the report definition engine:
- Typed exception hierarchy with machine-readable codes
- Structured JSON logging
- Injectable clock
- Read-only movements table (in-memory and SQLAlchemy-backed)
"""

__version__ = "0.1.0"
