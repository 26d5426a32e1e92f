# pgxport/wire.py
"""
Wire type identifiers reported by the server for each result column.
"""

from enum import IntEnum
from typing import NamedTuple, Union


class WireType(IntEnum):
    """
    PostgreSQL type OIDs the formatters know about.

    Any OID not listed here maps to ``UNKNOWN``, whose values pass through
    the formatters unchanged.
    """
    UNKNOWN = 0
    BOOL = 16
    BYTEA = 17
    CHAR = 18
    NAME = 19
    INT8 = 20
    INT2 = 21
    INT4 = 23
    TEXT = 25
    OID = 26
    JSON = 114
    XML = 142
    FLOAT4 = 700
    FLOAT8 = 701
    MONEY = 790
    BPCHAR = 1042
    VARCHAR = 1043
    DATE = 1082
    TIME = 1083
    TIMESTAMP = 1114
    TIMESTAMPTZ = 1184
    INTERVAL = 1186
    TIMETZ = 1266
    NUMERIC = 1700
    UUID = 2950
    JSONB = 3802

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN

    @classmethod
    def from_oid(cls, oid) -> 'WireType':
        """Map a raw OID (int, None or anything else) to a member."""
        try:
            return cls(int(oid))
        except (TypeError, ValueError):
            return cls.UNKNOWN

    @property
    def is_temporal(self) -> bool:
        return self in (WireType.DATE, WireType.TIMESTAMP, WireType.TIMESTAMPTZ)

    @property
    def is_json(self) -> bool:
        return self in (WireType.JSON, WireType.JSONB)


class FieldDescriptor(NamedTuple):
    """Name and wire type of one projected column."""
    name: str
    type_id: WireType = WireType.UNKNOWN

    @classmethod
    def create(cls, name: str, oid: Union[int, WireType, None] = None) -> 'FieldDescriptor':
        return cls(name, WireType.from_oid(oid))
