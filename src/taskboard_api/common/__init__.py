"""Shared HTTP plumbing: logging, middleware, error rendering and schemas."""
