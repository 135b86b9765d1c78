"""Core shared types."""
