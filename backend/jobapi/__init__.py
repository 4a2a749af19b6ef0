"""HTTP API, persistence and CSV export for saved jobs."""
