"""
LDAP directory access for the AD Identity Mapper.

This module provides the default ldap3-based collaborators: a directory
handle that runs searches and yields ``DirectoryEntry`` objects, and a
group membership resolver backed by group searches.
"""

import logging
import ssl
from typing import Dict, Iterable, List, Any, Optional

from ldap3 import Server, Connection, SUBTREE, BASE, ALL, Tls
from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ad_identity.entry import DirectoryAccessError, DirectoryEntry
from ad_identity.groups import GroupMembershipResolver

logger = logging.getLogger(__name__)

# LDAP result codes that mean "no entries" rather than failure
RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32


class LDAPConnectionError(Exception):
    """Raised when LDAP connection fails."""
    pass


class LDAPDirectory:
    """
    Directory handle used to fetch entries.

    The connection is opened once and shared; callers sharing an instance
    across threads must synchronize access themselves.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize LDAP directory with configuration.

        Args:
            config: LDAP configuration dictionary
        """
        self.config = config
        self.server_url = config['server_url']
        self.bind_dn = config['bind_dn']
        self.bind_password = config['bind_password']

        # SSL/TLS configuration
        self.use_ssl = config.get('use_ssl', self.server_url.lower().startswith('ldaps://'))
        self.start_tls = config.get('start_tls', False)
        self.verify_ssl = config.get('verify_ssl', True)
        self.ca_cert_file = config.get('ca_cert_file')

        # Connection settings
        self.connection_timeout = config.get('connection_timeout', 10)
        self.receive_timeout = config.get('receive_timeout', 10)

        self.server = None
        self.connection = None
        self._connected = False

    def connect(self) -> bool:
        """
        Establish connection to the LDAP server.

        Returns:
            True if connection successful

        Raises:
            LDAPConnectionError: If the connection or bind fails
        """
        try:
            self.server = Server(
                self.server_url,
                use_ssl=self.use_ssl,
                tls=self._create_tls_config(),
                get_info=ALL,
                connect_timeout=self.connection_timeout
            )
            logger.debug(f"Created LDAP server object for {self.server_url} (SSL: {self.use_ssl}, StartTLS: {self.start_tls})")

            self.connection = Connection(
                self.server,
                user=self.bind_dn,
                password=self.bind_password,
                auto_bind=False,
                receive_timeout=self.receive_timeout
            )

            if not self.connection.open():
                raise LDAPConnectionError(f"Failed to open connection: {self.connection.result}")

            if self.start_tls and not self.use_ssl:
                if not self.connection.start_tls():
                    raise LDAPConnectionError(f"Failed to start TLS: {self.connection.result}")
                logger.debug("StartTLS negotiation successful")

            if not self.connection.bind():
                raise LDAPConnectionError(f"Bind failed: {self.connection.result}")

        except LDAPException as e:
            self.connection = None
            raise LDAPConnectionError(f"Failed to connect to LDAP server {self.server_url}: {e}")

        self._connected = True
        logger.info(f"Successfully connected and bound to LDAP server {self.server_url}")
        return True

    def _create_tls_config(self) -> Optional[Tls]:
        """
        Create TLS configuration for LDAP connection.

        Returns:
            Tls configuration object or None if not needed
        """
        if not (self.use_ssl or self.start_tls):
            return None

        tls_config = {}

        if not self.verify_ssl:
            tls_config['validate'] = ssl.CERT_NONE
            logger.warning("SSL certificate verification disabled")
        else:
            tls_config['validate'] = ssl.CERT_REQUIRED

        if self.ca_cert_file:
            tls_config['ca_certs_file'] = self.ca_cert_file
            logger.debug(f"Using CA certificate file: {self.ca_cert_file}")

        try:
            return Tls(**tls_config)
        except LDAPException as e:
            raise LDAPConnectionError(f"Failed to create TLS configuration: {e}")

    def disconnect(self):
        """Close LDAP connection."""
        if self.connection and self._connected:
            try:
                self.connection.unbind()
                logger.debug("LDAP connection closed")
            except LDAPException as e:
                logger.warning(f"Error closing LDAP connection: {e}")
            finally:
                self._connected = False
                self.connection = None

    def search(self, base_dn: str, search_filter: str, attributes: Iterable[str],
               scope=SUBTREE) -> List[DirectoryEntry]:
        """
        Search the directory.

        Args:
            base_dn: Search root
            search_filter: LDAP filter
            attributes: Directory attribute names to return
            scope: ldap3 search scope

        Returns:
            Matching entries, each tagged with ``base_dn``

        Raises:
            DirectoryAccessError: If not connected or the search fails
        """
        if not self._connected:
            raise DirectoryAccessError("Not connected to LDAP server")

        attributes = list(attributes)
        logger.debug(f"Searching with filter: {search_filter} in base: {base_dn} for {attributes}")

        try:
            self.connection.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=scope,
                attributes=attributes
            )
        except LDAPException as e:
            raise DirectoryAccessError(f"LDAP search failed: {e}")

        result_code = (self.connection.result or {}).get('result', RESULT_SUCCESS)
        if result_code not in (RESULT_SUCCESS, RESULT_NO_SUCH_OBJECT):
            raise DirectoryAccessError(f"Search failed: {self.connection.result}")

        entries = [
            DirectoryEntry.from_ldap3(item, base_dn=base_dn)
            for item in (self.connection.response or [])
            if item.get('type') == 'searchResEntry'
        ]
        logger.debug(f"Retrieved {len(entries)} entries from {base_dn}")
        return entries

    def get_entry(self, dn: str, attributes: Iterable[str]) -> Optional[DirectoryEntry]:
        """Read a single entry by DN, or None if it does not exist."""
        entries = self.search(dn, '(objectClass=*)', attributes, scope=BASE)
        return entries[0] if entries else None

    def default_base_dn(self) -> str:
        """Extract domain base DN from bind DN or server info."""
        if 'DC=' in self.bind_dn.upper():
            parts = self.bind_dn.split(',')
            dc_parts = [part.strip() for part in parts if part.strip().upper().startswith('DC=')]
            if dc_parts:
                return ','.join(dc_parts)

        if self.server and self.server.info and self.server.info.naming_contexts:
            return self.server.info.naming_contexts[0]

        raise DirectoryAccessError("Cannot determine domain base DN")

    def __enter__(self):
        """Context manager entry."""
        if not self._connected:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.disconnect()


class LDAPGroupResolver(GroupMembershipResolver):
    """Resolves group memberships by searching for groups referencing an entry."""

    def __init__(self, directory: LDAPDirectory, config: Dict[str, Any]):
        """
        Initialize group resolver.

        Args:
            directory: Connected directory handle
            config: The ``ad`` configuration section
        """
        self.directory = directory
        self.group_base_dn = config.get('group_base_dn', '')
        self.group_object_classes = config.get('group_object_classes', ['group', 'groupOfNames'])
        self.member_attribute = config.get('group_member_attribute', 'member')
        self.posix_group_object_class = config.get('posix_group_object_class', 'posixGroup')
        self.posix_member_attribute = config.get('posix_member_attribute', 'memberUid')

    def _base_dn(self) -> str:
        return self.group_base_dn or self.directory.default_base_dn()

    def groups_for_dn(self, dn: str) -> List[str]:
        classes = ''.join(f"(objectClass={oc})" for oc in self.group_object_classes)
        search_filter = f"(&(|{classes})({self.member_attribute}={escape_filter_chars(dn)}))"
        entries = self.directory.search(self._base_dn(), search_filter, ['cn'])
        groups = [entry.dn for entry in entries]
        logger.debug(f"Found {len(groups)} groups for {dn}")
        return groups

    def posix_groups_for_refs(self, refs: Iterable[str]) -> List[str]:
        refs = sorted(set(refs))
        if not refs:
            return []
        members = ''.join(f"({self.posix_member_attribute}={escape_filter_chars(ref)})" for ref in refs)
        search_filter = f"(&(objectClass={self.posix_group_object_class})(|{members}))"
        entries = self.directory.search(self._base_dn(), search_filter, ['cn'])
        return [entry.dn for entry in entries]
