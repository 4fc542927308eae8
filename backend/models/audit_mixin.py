from sqlalchemy import Column, DateTime, String

from database import clinic_now


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Timestamps are timezone-aware and taken in the clinic's configured timezone.
    Catalog rows are deactivated rather than deleted, so there are no
    soft-delete columns here.
    """
    created_at = Column(DateTime(timezone=True), default=clinic_now)
    updated_at = Column(DateTime(timezone=True), onupdate=clinic_now)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
