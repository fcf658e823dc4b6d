"""Redis connection and the per-user page cache."""
