"""Business domain modules."""
