"""Chapter sequencing, progress aggregation, completion and certificates."""
