"""Aggregation services: classification, fan-out, scoring and assembly."""
