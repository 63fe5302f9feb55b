"""Source implementations."""
