"""Signup, login, refresh tokens and password flows."""
