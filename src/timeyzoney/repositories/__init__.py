"""Low-level table access, one repository per table."""
