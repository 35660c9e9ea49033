"""Read-only directory of timezone assignments and guild memberships."""
