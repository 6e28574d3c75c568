"""
Sandtrack: sand delivery lifecycle backend.

Coordinates the movement of certified sand from quarry to well site and
keeps orders, trucks, drivers and invoices consistent along the way.
"""

__version__ = "1.0.0"
