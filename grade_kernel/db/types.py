"""
Module: grade_kernel.db.types
Responsibility: Column types and length limits shared by the models.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - Action payloads are schema-less JSON objects.  The column type never
      interprets them; handlers own their shape.
    - Datetimes read back from the database are always timezone-aware (UTC),
      including on backends that store them naive.
    - Decision comments are capped at COMMENT_MAX_LENGTH characters.
"""

from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

# Opaque structured payload (JSONB on PostgreSQL, JSON elsewhere)
JSONPayload = JSON().with_variant(JSONB(), "postgresql")

TITLE_MAX_LENGTH = 255
STATUS_MAX_LENGTH = 32
ACTION_KEY_MAX_LENGTH = 100
COMMENT_MAX_LENGTH = 2000


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime that survives a round trip through SQLite.

    Contract:
        PostgreSQL stores TIMESTAMP WITH TIME ZONE natively.  SQLite drops
        the offset, so values are normalised to UTC on the way in and tagged
        as UTC on the way out.

    Guarantees:
        - process_bind_param: aware datetime -> UTC datetime.
        - process_result_value: naive datetime -> UTC-tagged datetime.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value
