"""Background jobs of the friends feed feature."""
