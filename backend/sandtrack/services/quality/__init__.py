"""Read access to QC tests and certificates."""
