"""Invoice numbering and issuance."""
