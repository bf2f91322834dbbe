"""HTTP API for the seller dashboard."""
