"""Shared SQLAlchemy base definitions and column types."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Integer, LargeBinary, MetaData, SmallInteger, String
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import DeclarativeBase


# Shared metadata constant so the provisioner sees every table
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)


class Base(DeclarativeBase):
    metadata = metadata


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# MQTT names are case sensitive; MySQL's default collations are not.
ClientIdType = String(255).with_variant(mysql.VARCHAR(255, collation="utf8mb4_bin"), "mysql")
TopicType = String(512).with_variant(mysql.VARCHAR(512, collation="utf8mb4_bin"), "mysql")
BrokerIdType = String(255).with_variant(mysql.VARCHAR(255, collation="utf8mb4_bin"), "mysql")
PayloadType = LargeBinary().with_variant(mysql.LONGBLOB(), "mysql")
QoSType = SmallInteger
MessageIdType = Integer


__all__ = [
    "Base",
    "metadata",
    "naming_convention",
    "utcnow",
    "ClientIdType",
    "TopicType",
    "BrokerIdType",
    "PayloadType",
    "QoSType",
    "MessageIdType",
]
