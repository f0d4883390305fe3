from datetime import datetime, timezone

from sqlalchemy import JSON, Integer
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql.functions import GenericFunction

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class json_array_length(GenericFunction):
    """Length of a JSON array column, 0 when the value is not an array."""

    type = Integer()
    inherit_cache = True


@compiles(json_array_length, "postgresql")
def _pg_json_array_length(element, compiler, **kw):
    arg = compiler.process(element.clauses, **kw)
    return "CASE WHEN jsonb_typeof(%s) = 'array' THEN jsonb_array_length(%s) ELSE 0 END" % (arg, arg)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo on the way back; treat naive values as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Base(AsyncAttrs, DeclarativeBase):
    pass
