"""Knowledge store engine: enrichment, persistence and retrieval of captured pages."""
