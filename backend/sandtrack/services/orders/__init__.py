"""Order status rules and persistence."""
