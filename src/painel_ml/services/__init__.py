"""Domain services. Each service wraps a database session."""
