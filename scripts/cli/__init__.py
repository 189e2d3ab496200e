"""
Construction finance CLI: administrator entry point for the financial core.

Initialise the database, resolve exchange rates, aggregate payroll weeks and
project profit and loss, and run the expense rate backfill.

Entry point: python -m scripts.cli
"""

from scripts.cli.main import main

__all__ = ["main"]
