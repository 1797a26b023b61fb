"""Application services built on top of the resilient gateway."""
