"""Core infrastructure: transport, cache and error types."""
