"""Domain layer for backoffice: entities, services and the pure compute functions.

Services are imported from their modules directly (``backoffice.domain.budget``
etc.) so that the database layer can import entities without a cycle.
"""
