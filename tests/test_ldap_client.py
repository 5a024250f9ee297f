#!/usr/bin/env python3
"""
Unit tests for the ldap3-backed directory and group resolver.

The ldap3 Server and Connection classes are mocked; no directory server
is needed.
"""

import os
import sys
import unittest
from unittest.mock import Mock, patch

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ldap3 import BASE
from ldap3.core.exceptions import LDAPException, LDAPSocketOpenError

from ad_identity.entry import DirectoryAccessError, DirectoryEntry
from ad_identity.ldap_client import LDAPConnectionError, LDAPDirectory, LDAPGroupResolver


def search_response(*items):
    return [
        {'type': 'searchResEntry', 'dn': dn, 'raw_attributes': attributes, 'attributes': {}}
        for dn, attributes in items
    ] + [{'type': 'searchResRef', 'uri': ['ldap://other.example.com/DC=example,DC=com']}]


class TestLDAPDirectory(unittest.TestCase):
    """Test cases for LDAPDirectory."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = {
            'server_url': 'ldaps://dc1.example.com:636',
            'bind_dn': 'CN=svc-idm,OU=Service,DC=example,DC=com',
            'bind_password': 'password123'
        }

    def test_initialization(self):
        directory = LDAPDirectory(self.config)
        self.assertTrue(directory.use_ssl)
        self.assertFalse(directory.start_tls)
        self.assertTrue(directory.verify_ssl)
        self.assertEqual(directory.connection_timeout, 10)

    def test_tls_config_only_when_needed(self):
        config = dict(self.config, server_url='ldap://dc1.example.com:389')
        self.assertIsNone(LDAPDirectory(config)._create_tls_config())
        self.assertIsNotNone(LDAPDirectory(self.config)._create_tls_config())

    @patch('ad_identity.ldap_client.Connection')
    @patch('ad_identity.ldap_client.Server')
    def test_connect_success(self, mock_server, mock_connection):
        connection = mock_connection.return_value
        connection.open.return_value = True
        connection.bind.return_value = True

        directory = LDAPDirectory(self.config)
        self.assertTrue(directory.connect())
        connection.bind.assert_called_once()
        connection.start_tls.assert_not_called()

    @patch('ad_identity.ldap_client.Connection')
    @patch('ad_identity.ldap_client.Server')
    def test_connect_bind_failure(self, mock_server, mock_connection):
        connection = mock_connection.return_value
        connection.open.return_value = True
        connection.bind.return_value = False
        connection.result = {'result': 49, 'description': 'invalidCredentials'}

        with self.assertRaises(LDAPConnectionError) as ctx:
            LDAPDirectory(self.config).connect()
        self.assertIn('Bind failed', str(ctx.exception))

    @patch('ad_identity.ldap_client.Connection')
    @patch('ad_identity.ldap_client.Server')
    def test_connect_socket_error(self, mock_server, mock_connection):
        mock_connection.return_value.open.side_effect = LDAPSocketOpenError('unable to open socket')

        directory = LDAPDirectory(self.config)
        with self.assertRaises(LDAPConnectionError):
            directory.connect()
        self.assertIsNone(directory.connection)

    @patch('ad_identity.ldap_client.Connection')
    @patch('ad_identity.ldap_client.Server')
    def test_start_tls(self, mock_server, mock_connection):
        connection = mock_connection.return_value
        connection.open.return_value = True
        connection.start_tls.return_value = True
        connection.bind.return_value = True

        config = dict(self.config, server_url='ldap://dc1.example.com:389', start_tls=True)
        LDAPDirectory(config).connect()
        connection.start_tls.assert_called_once()

    def connected_directory(self):
        directory = LDAPDirectory(self.config)
        directory.connection = Mock()
        directory.connection.result = {'result': 0}
        directory._connected = True
        return directory

    def test_search_requires_connection(self):
        with self.assertRaises(DirectoryAccessError):
            LDAPDirectory(self.config).search('DC=example,DC=com', '(objectClass=user)', ['mail'])

    def test_search_returns_entries(self):
        directory = self.connected_directory()
        directory.connection.response = search_response(
            ('CN=John Doe,OU=People,DC=example,DC=com', {'mail': [b'jdoe@example.com']}),
            ('CN=Jane Roe,OU=People,DC=example,DC=com', {'mail': [b'jroe@example.com']}),
        )

        entries = directory.search('OU=People,DC=example,DC=com', '(objectClass=user)', ['mail'])

        self.assertEqual(len(entries), 2)
        self.assertIsInstance(entries[0], DirectoryEntry)
        self.assertEqual(entries[0].dn, 'CN=John Doe,OU=People,DC=example,DC=com')
        self.assertEqual(entries[0].base_dn, 'OU=People,DC=example,DC=com')
        self.assertEqual(entries[1].get_string('MAIL'), 'jroe@example.com')

    def test_search_no_such_object_is_empty(self):
        directory = self.connected_directory()
        directory.connection.result = {'result': 32, 'description': 'noSuchObject'}
        directory.connection.response = []
        self.assertEqual(directory.search('OU=Gone,DC=example,DC=com', '(objectClass=*)', []), [])

    def test_search_failure(self):
        directory = self.connected_directory()
        directory.connection.result = {'result': 50, 'description': 'insufficientAccessRights'}
        with self.assertRaises(DirectoryAccessError):
            directory.search('DC=example,DC=com', '(objectClass=user)', ['mail'])

    def test_search_exception_translated(self):
        directory = self.connected_directory()
        directory.connection.search.side_effect = LDAPException('connection reset')
        with self.assertRaises(DirectoryAccessError):
            directory.search('DC=example,DC=com', '(objectClass=user)', ['mail'])

    def test_get_entry_uses_base_scope(self):
        directory = self.connected_directory()
        directory.connection.response = search_response(('CN=John Doe,DC=example,DC=com', {'cn': [b'John Doe']}))

        entry = directory.get_entry('CN=John Doe,DC=example,DC=com', ['cn'])

        self.assertEqual(entry.get_string('cn'), 'John Doe')
        self.assertEqual(directory.connection.search.call_args.kwargs['search_scope'], BASE)

    def test_default_base_dn_from_bind_dn(self):
        self.assertEqual(LDAPDirectory(self.config).default_base_dn(), 'DC=example,DC=com')

    def test_disconnect(self):
        directory = self.connected_directory()
        connection = directory.connection
        directory.disconnect()
        connection.unbind.assert_called_once()
        self.assertIsNone(directory.connection)


class TestLDAPGroupResolver(unittest.TestCase):
    """Test cases for LDAPGroupResolver."""

    def setUp(self):
        """Set up test fixtures."""
        self.directory = Mock(spec=LDAPDirectory)
        self.directory.search.return_value = [
            DirectoryEntry('CN=Staff,OU=Groups,DC=example,DC=com', {'cn': ['Staff']})
        ]
        self.resolver = LDAPGroupResolver(self.directory, {'group_base_dn': 'OU=Groups,DC=example,DC=com'})

    def test_groups_for_dn(self):
        groups = self.resolver.groups_for_dn('CN=John Doe (Sales),OU=People,DC=example,DC=com')

        self.assertEqual(groups, ['CN=Staff,OU=Groups,DC=example,DC=com'])
        base_dn, search_filter, attributes = self.directory.search.call_args.args
        self.assertEqual(base_dn, 'OU=Groups,DC=example,DC=com')
        self.assertIn('(objectClass=group)', search_filter)
        self.assertIn('(objectClass=groupOfNames)', search_filter)
        # Parentheses in the DN must be escaped
        self.assertIn('member=CN=John Doe \\28Sales\\29,OU=People,DC=example,DC=com', search_filter)

    def test_posix_groups_for_refs(self):
        groups = self.resolver.posix_groups_for_refs({'jdoe', 'john'})

        self.assertEqual(groups, ['CN=Staff,OU=Groups,DC=example,DC=com'])
        search_filter = self.directory.search.call_args.args[1]
        self.assertEqual(search_filter, '(&(objectClass=posixGroup)(|(memberUid=jdoe)(memberUid=john)))')

    def test_posix_groups_without_refs(self):
        self.assertEqual(self.resolver.posix_groups_for_refs(set()), [])
        self.directory.search.assert_not_called()

    def test_falls_back_to_domain_base(self):
        self.directory.default_base_dn.return_value = 'DC=example,DC=com'
        resolver = LDAPGroupResolver(self.directory, {})
        resolver.groups_for_dn('CN=John Doe,DC=example,DC=com')
        self.assertEqual(self.directory.search.call_args.args[0], 'DC=example,DC=com')

    def test_search_failure_propagates(self):
        self.directory.search.side_effect = DirectoryAccessError('timeout')
        with self.assertRaises(DirectoryAccessError):
            self.resolver.groups_for_dn('CN=John Doe,DC=example,DC=com')


if __name__ == '__main__':
    unittest.main()
