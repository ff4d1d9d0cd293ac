"""Authentication, roles and the user directory."""
