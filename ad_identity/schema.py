"""
Schema mapping between logical identity attributes and directory attributes.

``SchemaMapping`` is the interface the mapping core calls into.
``ConfiguredSchemaMapping`` is the default implementation, driven by the
``schema`` and ``ad`` sections of the configuration file.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from ad_identity.attrset import CaseInsensitiveDict, CaseInsensitiveSet
from ad_identity.constants import (
    AD_PASSWORD_ATTR, NAME_ATTR, PASSWORD_ATTR, UID_ATTR
)
from ad_identity.entry import DirectoryEntry
from ad_identity.objects import Attribute, GuardedString, Name, ObjectClass, Uid

logger = logging.getLogger(__name__)


class SchemaMappingError(Exception):
    """Raised when the schema rejects an attribute name or value."""
    pass


class SchemaMapping(ABC):
    """
    Abstract schema mapping consumed by the attribute resolver and materializer.

    Implementations translate logical attribute names into physical directory
    attribute names and build typed attributes from directory entries.
    """

    @abstractmethod
    def is_returned_by_default(self, object_class: ObjectClass, name: str) -> bool:
        """Return True if the attribute is returned when no attributes are requested."""
        pass

    @abstractmethod
    def is_readable(self, object_class: ObjectClass, name: str) -> bool:
        """Return True if the attribute may be read back from the directory."""
        pass

    @abstractmethod
    def returned_by_default_attributes(self, object_class: ObjectClass) -> List[str]:
        """Return the logical names of all attributes returned by default."""
        pass

    @abstractmethod
    def to_physical_names(self, object_class: ObjectClass, names: Iterable[str]) -> CaseInsensitiveSet:
        """Map logical attribute names to directory attribute names."""
        pass

    @abstractmethod
    def entry_to_uid(self, object_class: ObjectClass, entry: DirectoryEntry) -> Uid:
        pass

    @abstractmethod
    def entry_to_name(self, object_class: ObjectClass, entry: DirectoryEntry) -> Name:
        pass

    @abstractmethod
    def build_attribute(self, object_class: ObjectClass, name: str, entry: DirectoryEntry) -> Optional[Attribute]:
        """
        Build a typed attribute from an entry.

        Raises:
            SchemaMappingError: If the name or the stored value is rejected
        """
        pass


class AttributeInfo:
    """Schema information for one logical attribute."""

    TYPES = ('string', 'integer', 'boolean', 'binary', 'guardedstring')

    def __init__(self, name: str, ldap_name: Optional[str] = None, readable: bool = True,
                 returned_by_default: bool = True, multi_valued: bool = False,
                 type: str = 'string'):
        if type not in self.TYPES:
            raise SchemaMappingError(f"Unsupported attribute type for {name}: {type}")
        self.name = name
        self.ldap_name = ldap_name or name
        self.readable = readable
        self.returned_by_default = returned_by_default
        self.multi_valued = multi_valued
        self.type = type

    @classmethod
    def from_config(cls, name: str, config: Optional[Dict[str, Any]]) -> 'AttributeInfo':
        config = config or {}
        return cls(
            name,
            ldap_name=config.get('ldap_name'),
            readable=config.get('readable', True),
            returned_by_default=config.get('returned_by_default', True),
            multi_valued=config.get('multi_valued', False),
            type=config.get('type', 'string')
        )

    def __repr__(self) -> str:
        return f"AttributeInfo({self.name!r} -> {self.ldap_name!r}, type={self.type})"


class ConfiguredSchemaMapping(SchemaMapping):
    """
    Schema mapping built from configuration.

    Every object class, configured or not, implicitly defines ``__UID__``
    (the ``ad.uid_attribute``), ``__NAME__`` (the entry DN) and
    ``__PASSWORD__`` (``unicodePwd``, readable for sync but never returned by
    default). Names without schema information, including every attribute
    of an object class the configuration does not list, are passed through
    unchanged.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize schema mapping.

        Args:
            config: Full application configuration dictionary
        """
        ad_config = config.get('ad', {})
        self.uid_attribute = ad_config.get('uid_attribute', 'objectGUID')
        self.name_attribute = ad_config.get('name_attribute', 'distinguishedName')

        self._implicit = self._load_class("", {})
        self._classes = CaseInsensitiveDict()
        for class_name, class_config in (config.get('schema') or {}).items():
            self._classes[class_name] = self._load_class(class_name, class_config or {})

        logger.debug(f"Schema mapping loaded for object classes: {list(self._classes)}")

    def _load_class(self, class_name: str, class_config: Dict[str, Any]) -> CaseInsensitiveDict:
        infos = CaseInsensitiveDict()
        infos[UID_ATTR] = AttributeInfo(UID_ATTR, self.uid_attribute, type='string')
        infos[NAME_ATTR] = AttributeInfo(NAME_ATTR, self.name_attribute, type='string')
        infos[PASSWORD_ATTR] = AttributeInfo(
            PASSWORD_ATTR, AD_PASSWORD_ATTR, returned_by_default=False, type='guardedstring'
        )
        for name, attr_config in (class_config.get('attributes') or {}).items():
            infos[name] = AttributeInfo.from_config(name, attr_config)
        return infos

    def _class_infos(self, object_class: ObjectClass) -> CaseInsensitiveDict:
        # Classes missing from the schema only know the implicit attributes
        infos = self._classes.get(object_class.value)
        if infos is None:
            logger.debug(f"Object class {object_class} not configured, using implicit attributes only")
            return self._implicit
        return infos

    def find_attribute_info(self, object_class: ObjectClass, name: str) -> Optional[AttributeInfo]:
        if object_class.is_any():
            return None
        return self._class_infos(object_class).get(name)

    def is_returned_by_default(self, object_class: ObjectClass, name: str) -> bool:
        info = self.find_attribute_info(object_class, name)
        return bool(info and info.returned_by_default)

    def is_readable(self, object_class: ObjectClass, name: str) -> bool:
        info = self.find_attribute_info(object_class, name)
        return info is None or info.readable

    def returned_by_default_attributes(self, object_class: ObjectClass) -> List[str]:
        if object_class.is_any():
            return [NAME_ATTR]
        return [info.name for info in self._class_infos(object_class).values()
                if info.returned_by_default]

    def to_physical_names(self, object_class: ObjectClass, names: Iterable[str]) -> CaseInsensitiveSet:
        result = CaseInsensitiveSet()
        for name in names:
            info = self.find_attribute_info(object_class, name)
            result.add(info.ldap_name if info else name)
        return result

    def entry_to_uid(self, object_class: ObjectClass, entry: DirectoryEntry) -> Uid:
        value = entry.get_first(self.uid_attribute)
        if value is None:
            raise SchemaMappingError(f"Entry {entry.dn} has no {self.uid_attribute} value")
        if self.uid_attribute.casefold() == 'objectguid' and isinstance(value, bytes) and len(value) == 16:
            # objectGUID is stored little-endian
            return Uid(str(uuid.UUID(bytes_le=value)))
        return Uid(entry.get_string(self.uid_attribute))

    def entry_to_name(self, object_class: ObjectClass, entry: DirectoryEntry) -> Name:
        if not entry.dn:
            raise SchemaMappingError("Entry has no distinguished name")
        return Name(entry.dn)

    def build_attribute(self, object_class: ObjectClass, name: str, entry: DirectoryEntry) -> Optional[Attribute]:
        info = self.find_attribute_info(object_class, name)
        if info is None:
            return Attribute.build(name, entry.get_string_values(name))

        if info.type == 'guardedstring':
            return Attribute.build(info.name, [GuardedString()])

        raw_values = entry.get_values(info.ldap_name)
        if not raw_values:
            return None
        if not info.multi_valued and len(raw_values) > 1:
            logger.warning(f"Single-valued attribute {info.name} has {len(raw_values)} values on {entry.dn}")

        if info.type == 'binary':
            values = [v if isinstance(v, bytes) else str(v).encode('utf-8') for v in raw_values]
        else:
            values = [self._convert(info, value) for value in entry.get_string_values(info.ldap_name)]
        return Attribute.build(info.name, values)

    def _convert(self, info: AttributeInfo, value: str) -> Any:
        if info.type == 'integer':
            try:
                return int(value)
            except ValueError:
                raise SchemaMappingError(f"Invalid integer value for {info.name}: {value!r}")
        if info.type == 'boolean':
            lowered = value.strip().lower()
            if lowered not in ('true', 'false'):
                raise SchemaMappingError(f"Invalid boolean value for {info.name}: {value!r}")
            return lowered == 'true'
        return value
