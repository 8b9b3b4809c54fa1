"""Core infrastructure: configuration, logging, errors and the generation client."""
