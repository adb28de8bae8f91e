"""Remote dictionary lookups."""
