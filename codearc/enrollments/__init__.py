"""Course enrollment lifecycle: enroll, assign and unenroll."""
