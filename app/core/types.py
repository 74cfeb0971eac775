from sqlalchemy import String, TypeDecorator
from sqlalchemy.dialects import postgresql
import uuid


class GUID(TypeDecorator):
    """
    UUID primary keys on every backend the waitlist runs on.

    Postgres gets its native UUID column; SQLite (local runs and tests)
    stores the canonical 36-character string. Values always come back as
    uuid.UUID so ids compare the same way whichever database is configured.
    """
    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(postgresql.UUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        return value if dialect.name == 'postgresql' else str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)
