"""
Directory entries as fetched from the directory.

A ``DirectoryEntry`` is the raw attribute bag of one search result together
with its distinguished name and the base DN it was found under. Entries are
created by the search layer and are read-only afterwards.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ad_identity.attrset import CaseInsensitiveDict

logger = logging.getLogger(__name__)

RawValue = Union[str, bytes]


class DirectoryAccessError(Exception):
    """Raised when an attribute of a directory entry cannot be read."""
    pass


def _normalize_values(values: Any) -> Tuple[Any, ...]:
    if values is None:
        return ()
    if isinstance(values, (str, bytes, int)):
        return (values,)
    return tuple(values)


class DirectoryEntry:
    """
    Immutable view of one directory entry.

    Attribute lookups are case-insensitive. Values are kept exactly as
    delivered by the directory (``str`` or ``bytes``); the string accessors
    decode bytes as UTF-8.
    """

    __slots__ = ('_dn', '_base_dn', '_attributes')

    def __init__(self, dn: str, attributes: Mapping[str, Any], base_dn: str = ''):
        """
        Initialize a directory entry.

        Args:
            dn: Distinguished name of the entry
            attributes: Attribute name to value(s) mapping
            base_dn: Search root the entry was found under
        """
        self._dn = dn
        self._base_dn = base_dn
        store = CaseInsensitiveDict()
        for name, values in (attributes or {}).items():
            normalized = _normalize_values(values)
            if normalized:
                store[name] = normalized
        self._attributes = store

    @classmethod
    def from_ldap3(cls, response: Dict[str, Any], base_dn: str = '') -> 'DirectoryEntry':
        """
        Create an entry from an ldap3 search response item.

        Raw attributes are preferred so that binary values such as
        ``objectGUID`` reach the schema mapping untouched.

        Args:
            response: One item of ``Connection.response`` with type ``searchResEntry``
            base_dn: Search root used for the search
        """
        attributes = response.get('raw_attributes') or response.get('attributes') or {}
        return cls(response.get('dn', ''), attributes, base_dn=base_dn)

    @property
    def dn(self) -> str:
        return self._dn

    @property
    def base_dn(self) -> str:
        return self._base_dn

    def attribute_names(self) -> List[str]:
        return list(self._attributes)

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def get_values(self, name: str) -> Tuple[RawValue, ...]:
        """Return raw values of an attribute, empty if absent."""
        return self._attributes.get(name, ())

    def get_first(self, name: str) -> Optional[RawValue]:
        values = self.get_values(name)
        return values[0] if values else None

    def get_string_values(self, name: str) -> List[str]:
        """
        Return attribute values as strings.

        Raises:
            DirectoryAccessError: If a binary value is not valid UTF-8
        """
        return [self._decode(name, value) for value in self.get_values(name)]

    def get_string(self, name: str) -> Optional[str]:
        """First value of an attribute as a string, or None if absent."""
        value = self.get_first(name)
        return None if value is None else self._decode(name, value)

    def _decode(self, name: str, value: Any) -> str:
        if isinstance(value, bytes):
            try:
                return value.decode('utf-8')
            except UnicodeDecodeError as e:
                raise DirectoryAccessError(
                    f"Cannot read attribute {name} of {self._dn}: {e}"
                )
        return str(value)

    def __repr__(self) -> str:
        return f"DirectoryEntry(dn={self._dn!r}, attributes={self.attribute_names()!r})"
