"""Adapters for collaborators outside the process: email, push, text generation."""
