"""Core client, models, cache and configuration for cvapi."""
