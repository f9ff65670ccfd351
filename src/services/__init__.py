"""Service layer: bookmark and tag operations, live change feed."""
