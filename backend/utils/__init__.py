import enum

from sqlalchemy import inspect


def row_snapshot(obj, exclude=()):
    """Column values of a mapped object as JSON-ready data, for audit before/after images."""
    if obj is None:
        return None
    snapshot = {}
    for attr in inspect(obj).mapper.column_attrs:
        if attr.key in exclude:
            continue
        value = getattr(obj, attr.key)
        if isinstance(value, enum.Enum):
            value = value.value
        elif hasattr(value, 'isoformat'):
            value = value.isoformat()
        snapshot[attr.key] = value
    return snapshot

__all__ = ['row_snapshot']
