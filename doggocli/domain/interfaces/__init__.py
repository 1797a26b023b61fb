"""Domain Interfaces (Ports).

Abstract contracts for external collaborators: the token store and the UI.
"""
