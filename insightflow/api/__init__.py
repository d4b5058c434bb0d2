"""HTTP API for insightflow."""
