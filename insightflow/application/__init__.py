"""Application layer - use cases orchestrating domain models through ports."""
