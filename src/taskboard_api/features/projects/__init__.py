"""Projects and project memberships."""
