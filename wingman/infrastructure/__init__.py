"""Infrastructure layer (logging, database)."""
