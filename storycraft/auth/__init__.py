"""Role and permission rules."""
