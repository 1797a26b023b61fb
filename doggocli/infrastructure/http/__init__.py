"""HTTP access to the backend REST API."""
