"""Domain layer: entities and pure services with no storage or HTTP dependencies."""
