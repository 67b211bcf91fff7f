"""Decorators recognised by schema derivation."""


def pure(func):
    """Mark a function as free of side effects; it is exposed as a query."""
    return func
