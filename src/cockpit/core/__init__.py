"""Core engine: entity tree, status aggregation, linked groups, configuration."""
