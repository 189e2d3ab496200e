"""
Construction Kernel -- shared foundation for the financial core.

Provides:
- Record persistence (SQLAlchemy ORM) for the independent collections
- Read-only selectors ("fetch by collection + filter")
- Decimal money accumulation and currency conversion
- Typed exceptions and structured JSON logging
"""

__version__ = "0.1.0"
