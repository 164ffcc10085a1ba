"""HTTP transport for the duplicate scanner."""
