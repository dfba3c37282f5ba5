"""Storefront error types.

Input problems use protean's ``ValidationError`` and unknown records use
``ObjectNotFoundError``; the types below cover storage and lifecycle failures.
"""


class PersistenceError(Exception):
    """A write or read could not be completed by any backing store."""


class StateError(Exception):
    """A requested order status transition is not in the state graph."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot transition from {current} to {target}")


class ConflictError(Exception):
    """A record with the same identifier already exists in a collection."""

    def __init__(self, collection, record_id):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Duplicate id {record_id} in {collection}")
