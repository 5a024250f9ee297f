"""
Materialization of directory entries into identity objects.

Each requested logical attribute is produced by a handler looked up by name.
Virtual attributes (group memberships, the enabled flag, the password
placeholder) have dedicated handlers; every other name goes through the
schema mapping. Handlers return None to leave the attribute out.
"""

import logging
from typing import Callable, Iterable, Optional

from ad_identity.account_control import decode_enabled
from ad_identity.attrset import CaseInsensitiveDict
from ad_identity.constants import (
    LDAP_GROUPS_ATTR, NAME_ATTR, PASSWORD_ATTR, POSIX_GROUPS_ATTR,
    POSIX_REF_ATTR, TOMBSTONE_NAME, UACCONTROL_ATTR, UID_ATTR
)
from ad_identity.entry import DirectoryAccessError, DirectoryEntry
from ad_identity.groups import GroupMembershipResolver
from ad_identity.objects import (
    Attribute, GuardedString, IdentityObject, IdentityObjectBuilder, ObjectClass, Uid
)
from ad_identity.schema import SchemaMapping

logger = logging.getLogger(__name__)

AttributeHandler = Callable[[str, DirectoryEntry, ObjectClass], Optional[Attribute]]


class EntryMaterializer:
    """
    Converts directory entries into identity objects.

    Handlers are registered per attribute name; names without a handler use
    the schema mapping.
    """

    def __init__(self, schema: SchemaMapping, groups: GroupMembershipResolver,
                 posix_ref_attribute: str = POSIX_REF_ATTR):
        """
        Initialize entry materializer.

        Args:
            schema: Schema mapping used for uid, name and plain attributes
            groups: Resolver for group membership attributes
            posix_ref_attribute: Entry attribute matched against POSIX group members
        """
        self.schema = schema
        self.groups = groups
        self.posix_ref_attribute = posix_ref_attribute

        self._handlers = CaseInsensitiveDict({
            LDAP_GROUPS_ATTR: self._ldap_groups,
            POSIX_GROUPS_ATTR: self._posix_groups,
            PASSWORD_ATTR: self._password,
            UACCONTROL_ATTR: self._account_status,
            UID_ATTR: self._already_set,
            NAME_ATTR: self._already_set,
        })

    def register_handler(self, name: str, handler: AttributeHandler) -> None:
        """Add or replace the handler for an attribute name."""
        self._handlers[name] = handler

    def handler_for(self, name: str) -> AttributeHandler:
        return self._handlers.get(name, self._schema_attribute)

    def materialize(self, base_dn: str, entry: DirectoryEntry, attributes: Iterable[str],
                    object_class: ObjectClass) -> IdentityObject:
        """
        Build an identity object from a directory entry.

        Args:
            base_dn: Search root the entry was found under
            entry: Fetched directory entry
            attributes: Logical attribute names to materialize
            object_class: Object class of the entry

        Returns:
            Identity object

        Raises:
            DirectoryAccessError: If an attribute of the entry cannot be read
            SchemaMappingError: If the schema mapping rejects an attribute
        """
        builder = IdentityObjectBuilder()
        builder.set_object_class(object_class)
        builder.set_uid(self.schema.entry_to_uid(object_class, entry))
        builder.set_name(self.schema.entry_to_name(object_class, entry))

        for name in attributes:
            attribute = self.handler_for(name)(name, entry, object_class)
            if attribute is not None:
                builder.add_attribute(attribute)

        identity = builder.build()
        logger.debug(f"Materialized {identity.name} under {base_dn or entry.base_dn} "
                     f"with {len(identity.attributes)} attributes")
        return identity

    def materialize_tombstone(self, base_dn: str, uid, entry: Optional[DirectoryEntry],
                              object_class: ObjectClass) -> IdentityObject:
        """
        Build a minimal identity object for a deleted entry.

        The result carries only the given uid and a placeholder name; the
        entry contents are ignored.
        """
        builder = IdentityObjectBuilder()
        builder.set_object_class(object_class)
        builder.set_uid(uid if isinstance(uid, Uid) else Uid(str(uid)))
        builder.set_name(TOMBSTONE_NAME)
        logger.debug(f"Built tombstone for uid {uid} under {base_dn}")
        return builder.build()

    def _ldap_groups(self, name: str, entry: DirectoryEntry, object_class: ObjectClass) -> Attribute:
        return Attribute.build(LDAP_GROUPS_ATTR, self.groups.groups_for_dn(entry.dn))

    def _posix_groups(self, name: str, entry: DirectoryEntry, object_class: ObjectClass) -> Attribute:
        refs = set(entry.get_string_values(self.posix_ref_attribute))
        return Attribute.build(POSIX_GROUPS_ATTR, self.groups.posix_groups_for_refs(refs))

    def _password(self, name: str, entry: DirectoryEntry, object_class: ObjectClass) -> Attribute:
        # Never expose the stored value
        return Attribute.build(name, [GuardedString()])

    def _account_status(self, name: str, entry: DirectoryEntry,
                        object_class: ObjectClass) -> Optional[Attribute]:
        try:
            status = entry.get_string(UACCONTROL_ATTR)
        except DirectoryAccessError as e:
            logger.error(f"While fetching {UACCONTROL_ATTR}: {e}")
            return None

        logger.debug(f"User Account Control: {status}")
        return Attribute.build_enabled(decode_enabled(status))

    def _already_set(self, name: str, entry: DirectoryEntry, object_class: ObjectClass) -> None:
        return None

    def _schema_attribute(self, name: str, entry: DirectoryEntry,
                          object_class: ObjectClass) -> Optional[Attribute]:
        physical = self.schema.to_physical_names(object_class, [name])
        if not any(entry.has_attribute(ldap_name) for ldap_name in physical):
            return None
        return self.schema.build_attribute(object_class, name, entry)
