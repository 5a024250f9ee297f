"""
Resolution of the attribute set to request from the directory.

A query is resolved in two steps: first the logical attribute names the
identity objects will carry, then the physical directory attribute names
that have to be fetched to build them.
"""

import logging
from typing import Iterable, Optional

from ad_identity.attrset import CaseInsensitiveSet
from ad_identity.constants import (
    LDAP_GROUPS_ATTR, NAME_ATTR, PASSWORD_ATTR, POSIX_GROUPS_ATTR,
    POSIX_REF_ATTR, UACCONTROL_ATTR, UID_ATTR, VIRTUAL_GROUP_ATTRS
)
from ad_identity.objects import ObjectClass
from ad_identity.schema import SchemaMapping

logger = logging.getLogger(__name__)


class AttributeSetResolver:
    """Decides which attributes a search must return."""

    def __init__(self, schema: SchemaMapping, posix_ref_attribute: str = POSIX_REF_ATTR):
        self.schema = schema
        self.posix_ref_attribute = posix_ref_attribute

    def resolve_logical_attributes(self, requested: Optional[Iterable[str]],
                                   object_class: ObjectClass) -> CaseInsensitiveSet:
        """
        Resolve the logical attribute names for a query.

        Args:
            requested: Attribute names asked for by the caller, or None for defaults
            object_class: Object class being searched

        Returns:
            Attribute names, always including the uid and the account control attribute
        """
        if requested is not None:
            result = CaseInsensitiveSet(requested)
            self._remove_non_readable(result, object_class)
            result.add(NAME_ATTR)
        else:
            result = self.returned_by_default(object_class)

        # Uid is required to build an identity object
        result.add(UID_ATTR)

        # Needed to tell whether the account is enabled
        result.add(UACCONTROL_ATTR)

        # The password is readable for sync but cannot be returned from a search
        if PASSWORD_ATTR in result:
            logger.warning("Reading passwords not supported")

        return result

    def returned_by_default(self, object_class: ObjectClass) -> CaseInsensitiveSet:
        """Attributes returned when the caller does not ask for any."""
        if object_class.is_any():
            return CaseInsensitiveSet([NAME_ATTR])
        result = CaseInsensitiveSet(self.schema.returned_by_default_attributes(object_class))
        result.add(NAME_ATTR)
        return result

    def _remove_non_readable(self, attributes: CaseInsensitiveSet, object_class: ObjectClass) -> None:
        # Group attributes are virtual and unknown to the schema
        present = [name for name in VIRTUAL_GROUP_ATTRS if attributes.remove_if_present(name)]

        for name in list(attributes):
            if not self.schema.is_readable(object_class, name):
                logger.debug(f"Dropping non-readable attribute {name} for {object_class}")
                attributes.discard(name)

        for name in present:
            attributes.add(name)

    def resolve_directory_attributes(self, logical: Iterable[str],
                                     object_class: ObjectClass) -> CaseInsensitiveSet:
        """
        Map logical attribute names to the directory attributes to fetch.

        Args:
            logical: Logical attribute names, as returned by resolve_logical_attributes
            object_class: Object class being searched

        Returns:
            Physical directory attribute names
        """
        clean = CaseInsensitiveSet(logical)
        clean.discard(LDAP_GROUPS_ATTR)
        posix_groups = clean.remove_if_present(POSIX_GROUPS_ATTR)

        result = self.schema.to_physical_names(object_class, clean)

        if posix_groups:
            result.add(self.posix_ref_attribute)

        return result
