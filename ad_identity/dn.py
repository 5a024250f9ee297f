"""
Distinguished name construction and validation.

New entries are placed in the configured default people container, using
either the supplied common name or the identity object's name as the RDN.
"""

import logging
from typing import Any, Dict, Optional, Union

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

from ad_identity.objects import Attribute, Name

logger = logging.getLogger(__name__)


class InvalidDNError(Exception):
    """Raised when a configured DN does not parse."""
    pass


def is_dn(candidate: Optional[str]) -> bool:
    """
    Check if a string is a syntactically valid distinguished name.

    Args:
        candidate: String to check

    Returns:
        True if the string is non-blank and parses as a DN, False otherwise
    """
    if not isinstance(candidate, str) or not candidate.strip():
        return False
    try:
        parse_dn(candidate)
    except (LDAPInvalidDnError, ValueError, IndexError) as e:
        logger.debug(f"Not a DN: {candidate!r} ({e})")
        return False
    return True


def _first_value(common_name: Union[Attribute, str, None]) -> Optional[str]:
    if common_name is None:
        return None
    if isinstance(common_name, Attribute):
        value = common_name.value
        return None if value is None else str(value)
    return str(common_name)


class DNResolver:
    """Builds DNs for new entries under the default people container."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize DN resolver.

        Args:
            config: Full application configuration dictionary

        Raises:
            InvalidDNError: If the default people container is not a valid DN
        """
        self.default_container = config.get('ad', {}).get('default_people_container', '')
        if not is_dn(self.default_container):
            raise InvalidDNError(f"Invalid default people container: {self.default_container!r}")

    def build_dn(self, name: Union[Name, str], common_name: Union[Attribute, str, None] = None) -> str:
        """
        Create a DN for an entry whose name is not already a DN.

        Args:
            name: Identity object name, used when no common name is given
            common_name: Common name attribute or value

        Returns:
            ``cn=<value>,<default people container>``
        """
        cn = _first_value(common_name)
        if cn is None or not cn.strip():
            cn = name.value if isinstance(name, Name) else str(name)
        return f"cn={cn},{self.default_container}"

    def is_dn(self, candidate: Optional[str]) -> bool:
        return is_dn(candidate)
