"""Provider pipelines: fetch, merge and persist achievement progress."""
