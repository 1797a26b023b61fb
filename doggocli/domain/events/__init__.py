"""Domain Event definitions.

Represents significant occurrences within the client (API calls, retries,
circuit transitions, session changes) that observers might react to.
"""
