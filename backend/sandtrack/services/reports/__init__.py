"""Traceability report rendering."""
