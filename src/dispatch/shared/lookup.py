"""Aggregate lookup that reports missing records in lifecycle terms."""

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from dispatch.engine.errors import NotFoundError


def load(aggregate_cls, identifier: str, label: str | None = None):
    """Fetch an aggregate by id, raising ``NotFoundError`` when it does not exist."""
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError as exc:
        name = label or aggregate_cls.__name__.lower()
        raise NotFoundError(f"{name} {identifier} not found") from exc
