"""
Group membership resolver interface.

Group memberships are virtual attributes: they are not stored on the user
entry itself but are resolved by looking up the groups that reference it.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List


class GroupMembershipResolver(ABC):
    """Resolves directory and POSIX group memberships for an entry."""

    @abstractmethod
    def groups_for_dn(self, dn: str) -> List[str]:
        """
        Return the DNs of the directory groups that list ``dn`` as a member.

        Raises:
            DirectoryAccessError: If the lookup fails
        """
        pass

    @abstractmethod
    def posix_groups_for_refs(self, refs: Iterable[str]) -> List[str]:
        """
        Return the DNs of the POSIX groups whose memberUid matches any reference.

        Raises:
            DirectoryAccessError: If the lookup fails
        """
        pass
