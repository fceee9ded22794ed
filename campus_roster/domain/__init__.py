"""Storage-independent roster rules."""
