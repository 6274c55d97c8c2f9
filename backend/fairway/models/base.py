from sqlalchemy import DateTime
from sqlalchemy.dialects.mysql import DATETIME as MYSQL_DATETIME
from sqlalchemy.orm import DeclarativeBase

# Message ordering relies on sub-second precision; MySQL DATETIME drops it by default.
PreciseDateTime = DateTime(timezone=True).with_variant(MYSQL_DATETIME(fsp=6), "mysql")


class Base(DeclarativeBase):
    """Declarative base shared by every ORM model."""
