"""HTTP boundary for the health check core."""
