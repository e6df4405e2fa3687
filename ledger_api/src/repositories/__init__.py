"""Document store repositories."""
