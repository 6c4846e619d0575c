"""Infrastructure: vault, registries, sinks, event channels and persistence."""
