"""Domain layer: entities, value objects, services and repository contracts."""
