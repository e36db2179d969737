"""Application layer: services that orchestrate domain logic and persistence."""
