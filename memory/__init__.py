"""memory/: in-process caches for search reports and finished analyses."""
