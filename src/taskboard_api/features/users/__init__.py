"""User accounts and administrator actions."""
