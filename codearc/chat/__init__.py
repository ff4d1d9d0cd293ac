"""Direct messages between students, mentors and admins."""
