"""Domain models: entities, value objects and result types."""
