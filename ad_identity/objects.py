"""
Identity object model returned to the provisioning framework.

An identity object carries an object class, a unique identifier, a name and
a set of attributes. Objects are assembled with ``IdentityObjectBuilder`` and
are immutable once built.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple

from ad_identity.attrset import CaseInsensitiveDict
from ad_identity.constants import (
    ACCOUNT_CLASS, ANY_CLASS, ENABLE_ATTR, GROUP_CLASS, NAME_ATTR, UID_ATTR
)


@dataclass(frozen=True)
class ObjectClass:
    """Object class tag such as ``__ACCOUNT__`` or ``__GROUP__``."""

    value: str

    def is_any(self) -> bool:
        return self.value.upper() == ANY_CLASS

    def __eq__(self, other) -> bool:
        if not isinstance(other, ObjectClass):
            return NotImplemented
        return self.value.upper() == other.value.upper()

    def __hash__(self) -> int:
        return hash(self.value.upper())

    def __str__(self) -> str:
        return self.value


ObjectClass.ACCOUNT = ObjectClass(ACCOUNT_CLASS)
ObjectClass.GROUP = ObjectClass(GROUP_CLASS)
ObjectClass.ANY = ObjectClass(ANY_CLASS)


class GuardedString:
    """
    Opaque holder for a secret value.

    The secret is never shown by ``str`` or ``repr``. An empty instance is
    the placeholder returned wherever a password attribute is requested.
    """

    __slots__ = ('_chars',)

    def __init__(self, secret: str = ''):
        self._chars = secret

    def is_empty(self) -> bool:
        return not self._chars

    def reveal(self) -> str:
        return self._chars

    def __eq__(self, other) -> bool:
        return isinstance(other, GuardedString) and self._chars == other._chars

    def __hash__(self) -> int:
        return hash(self._chars)

    def __repr__(self) -> str:
        return 'GuardedString(****)'

    __str__ = __repr__


@dataclass(frozen=True)
class Attribute:
    """A named, possibly multi-valued attribute."""

    name: str
    values: Tuple[Any, ...] = ()

    @classmethod
    def build(cls, name: str, values: Optional[Iterable[Any]] = None) -> 'Attribute':
        if values is None:
            return cls(name, ())
        if isinstance(values, (str, bytes, GuardedString, bool, int)):
            return cls(name, (values,))
        return cls(name, tuple(values))

    @classmethod
    def build_enabled(cls, enabled: bool) -> 'Attribute':
        return cls(ENABLE_ATTR, (bool(enabled),))

    @property
    def value(self) -> Any:
        """First value, or None if the attribute is empty."""
        return self.values[0] if self.values else None

    def is_named(self, name: str) -> bool:
        return self.name.casefold() == name.casefold()


@dataclass(frozen=True)
class Uid:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Name:
    value: str

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class IdentityObject:
    """Materialized identity object."""

    object_class: ObjectClass
    uid: Uid
    name: Name
    attributes: Mapping[str, Attribute] = field(default_factory=dict)

    def get(self, name: str) -> Optional[Attribute]:
        return self.attributes.get(name)

    def values(self, name: str) -> Tuple[Any, ...]:
        attribute = self.attributes.get(name)
        return attribute.values if attribute else ()

    @property
    def enabled(self) -> Optional[bool]:
        """Account enabled flag, or None when it was not materialized."""
        attribute = self.attributes.get(ENABLE_ATTR)
        return attribute.value if attribute else None


class IdentityObjectBuilder:
    """Accumulates the parts of an identity object and builds it once."""

    def __init__(self):
        self.object_class: Optional[ObjectClass] = None
        self.uid: Optional[Uid] = None
        self.name: Optional[Name] = None
        self._attributes = CaseInsensitiveDict()

    def set_object_class(self, object_class: ObjectClass) -> 'IdentityObjectBuilder':
        self.object_class = object_class
        return self

    def set_uid(self, uid) -> 'IdentityObjectBuilder':
        self.uid = uid if isinstance(uid, Uid) else Uid(str(uid))
        return self

    def set_name(self, name) -> 'IdentityObjectBuilder':
        self.name = name if isinstance(name, Name) else Name(str(name))
        return self

    def add_attribute(self, attribute: Attribute) -> 'IdentityObjectBuilder':
        # uid and name live in their own fields
        if attribute.is_named(UID_ATTR) or attribute.is_named(NAME_ATTR):
            return self
        self._attributes[attribute.name] = attribute
        return self

    def add_attributes(self, attributes: Iterable[Attribute]) -> 'IdentityObjectBuilder':
        for attribute in attributes:
            self.add_attribute(attribute)
        return self

    def build(self) -> IdentityObject:
        if self.object_class is None:
            raise ValueError("Object class must be set before building an identity object")
        if self.uid is None:
            raise ValueError("Uid must be set before building an identity object")
        if self.name is None:
            raise ValueError("Name must be set before building an identity object")
        return IdentityObject(
            object_class=self.object_class,
            uid=self.uid,
            name=self.name,
            attributes=MappingProxyType(self._attributes.copy())
        )
