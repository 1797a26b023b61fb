"""Infrastructure Layer: Concrete implementations of domain interfaces.

Contains the HTTP gateway, resilience policies, token storage, configuration,
logging setup and the console display.
"""
