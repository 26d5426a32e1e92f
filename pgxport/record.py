# pgxport/record.py
"""
Ordered row object used by the encoders and the template exporter.
"""

from typing import Any, Dict, Iterator, List, Sequence, Tuple, Union


class Record(list):
    """
    One result row: values in projection order plus the column names.

    Record extends list so positional access, iteration and unpacking behave
    exactly like the underlying value sequence. Keyed access goes through a
    name -> position index that is built only the first time a column is
    looked up by name, and shared by every Record created from the same
    column list.

    Example
    -------
    ::

        row = Record(['id', 'name'], (1, 'Aang'))
        row[1]               # 'Aang'
        row['name']          # 'Aang'
        row.get('email')     # None
        list(row.items())    # [('id', 1), ('name', 'Aang')]
    """

    __slots__ = ('_fields',)

    def __init__(self, fields: 'Fields', values: Sequence[Any]) -> None:
        super().__init__(values)
        if not isinstance(fields, Fields):
            fields = Fields(fields)
        self._fields = fields

    def __getitem__(self, key: Union[int, str, slice]) -> Any:
        if isinstance(key, str):
            try:
                return super().__getitem__(self._fields.position(key))
            except KeyError:
                raise KeyError(f"Column '{key}' not found")
        return super().__getitem__(key)

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            return key in self._fields.names
        return super().__contains__(key)

    def keys(self) -> List[str]:
        return list(self._fields.names)

    def values(self) -> Tuple[Any, ...]:
        return tuple(super().__iter__())

    def items(self) -> Iterator[Tuple[str, Any]]:
        """(column, value) pairs in projection order."""
        return zip(self._fields.names, super().__iter__())

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def __repr__(self) -> str:
        pairs = ', '.join(f"{k}={v!r}" for k, v in self.items())
        return f"Record({pairs})"


class Fields:
    """Column names of a result set with a lazily built lookup index."""

    __slots__ = ('names', '_index')

    def __init__(self, names: Sequence[str]) -> None:
        self.names = tuple(names)
        self._index = None

    def position(self, name: str) -> int:
        if self._index is None:
            index: Dict[str, int] = {}
            for pos, col in enumerate(self.names):
                # first occurrence wins for duplicate column names
                index.setdefault(col, pos)
            self._index = index
        return self._index[name]

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names)
