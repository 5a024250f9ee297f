"""
Entry point combining the mapping components.

``ADUtilities`` binds the attribute resolver, the entry materializer and the
DN resolver to one schema mapping, one group resolver and one configuration.
"""

import logging
from typing import Any, Dict, Iterable, Iterator, Optional

from ad_identity.account_control import decode_enabled
from ad_identity.attrset import CaseInsensitiveSet
from ad_identity.constants import POSIX_REF_ATTR
from ad_identity.dn import DNResolver, is_dn
from ad_identity.entry import DirectoryEntry
from ad_identity.groups import GroupMembershipResolver
from ad_identity.materializer import EntryMaterializer
from ad_identity.objects import Attribute, IdentityObject, Name, ObjectClass
from ad_identity.resolver import AttributeSetResolver
from ad_identity.schema import ConfiguredSchemaMapping, SchemaMapping

logger = logging.getLogger(__name__)


class ADUtilities:
    """
    Mapping between Active Directory entries and identity objects.

    Typical use::

        utils = ADUtilities(config, groups=resolver)
        attrs = utils.resolve_logical_attributes(['mail', 'ldapGroups'], ObjectClass.ACCOUNT)
        fetch = utils.resolve_directory_attributes(attrs, ObjectClass.ACCOUNT)
        for entry in directory.search(base_dn, '(objectClass=user)', fetch):
            yield utils.materialize(base_dn, entry, attrs, ObjectClass.ACCOUNT)
    """

    def __init__(self, config: Dict[str, Any], groups: GroupMembershipResolver,
                 schema: Optional[SchemaMapping] = None):
        """
        Initialize AD utilities.

        Args:
            config: Full application configuration dictionary
            groups: Group membership resolver
            schema: Schema mapping; built from configuration if None
        """
        self.config = config
        self.schema = schema or ConfiguredSchemaMapping(config)
        self.groups = groups

        posix_ref = config.get('ad', {}).get('posix_ref_attribute', POSIX_REF_ATTR)
        self.resolver = AttributeSetResolver(self.schema, posix_ref_attribute=posix_ref)
        self.materializer = EntryMaterializer(self.schema, groups, posix_ref_attribute=posix_ref)
        self.dn_resolver = DNResolver(config)

    def resolve_logical_attributes(self, requested: Optional[Iterable[str]],
                                   object_class: ObjectClass) -> CaseInsensitiveSet:
        return self.resolver.resolve_logical_attributes(requested, object_class)

    def resolve_directory_attributes(self, logical: Iterable[str],
                                     object_class: ObjectClass) -> CaseInsensitiveSet:
        return self.resolver.resolve_directory_attributes(logical, object_class)

    def materialize(self, base_dn: str, entry: DirectoryEntry, attributes: Iterable[str],
                    object_class: ObjectClass) -> IdentityObject:
        return self.materializer.materialize(base_dn, entry, attributes, object_class)

    def materialize_tombstone(self, base_dn: str, uid, entry: Optional[DirectoryEntry],
                              object_class: ObjectClass) -> IdentityObject:
        return self.materializer.materialize_tombstone(base_dn, uid, entry, object_class)

    def build_dn(self, name, common_name=None) -> str:
        return self.dn_resolver.build_dn(name, common_name)

    def entry_dn(self, name: Name, common_name: Optional[Attribute] = None) -> str:
        """
        Return the DN for a create or update.

        The name is used as is when it already is a DN; otherwise a DN is
        built under the default people container.
        """
        if is_dn(name.value):
            return name.value
        return self.build_dn(name, common_name)

    @staticmethod
    def is_dn(candidate: Optional[str]) -> bool:
        return is_dn(candidate)

    @staticmethod
    def decode_enabled(raw) -> bool:
        return decode_enabled(raw)

    def search(self, directory, base_dn: str, search_filter: str, object_class: ObjectClass,
               requested: Optional[Iterable[str]] = None) -> Iterator[IdentityObject]:
        """
        Run a search and materialize every entry found.

        Args:
            directory: Object with a ``search(base_dn, search_filter, attributes)`` method
            base_dn: Search root
            search_filter: LDAP filter
            object_class: Object class of the results
            requested: Logical attribute names, or None for defaults

        Yields:
            Identity objects, in search order
        """
        logical = self.resolve_logical_attributes(requested, object_class)
        physical = self.resolve_directory_attributes(logical, object_class)
        for entry in directory.search(base_dn, search_filter, physical):
            yield self.materialize(base_dn, entry, logical, object_class)
