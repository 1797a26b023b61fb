"""Local persistence for the session token."""
