"""Core: protocol constants and domain errors."""
