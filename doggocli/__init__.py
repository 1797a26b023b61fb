"""doggoCLI: resilient command-line client for the DogGo locations API."""

__version__ = "0.1.0"
