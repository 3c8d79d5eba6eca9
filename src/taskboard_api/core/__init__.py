"""Core cross-feature building blocks."""
