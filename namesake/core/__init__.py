"""Core aggregation, models and provider gateway."""
