"""Application layer - search orchestration use cases."""
