"""Collaborative task board API."""
