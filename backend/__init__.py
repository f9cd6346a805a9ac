"""HTTP surface for the knowledge store."""
