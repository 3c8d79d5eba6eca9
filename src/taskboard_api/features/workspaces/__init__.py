"""Workspaces, memberships and invitations."""
