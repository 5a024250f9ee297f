#!/usr/bin/env python3
"""
Integration tests for ADUtilities.

Runs the full resolve, search and materialize flow against a mocked
directory and group resolver.
"""

import os
import sys
import unittest
from unittest.mock import Mock

# Add the project directory to the path so we can import our modules
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ad_identity.dn import InvalidDNError
from ad_identity.entry import DirectoryEntry
from ad_identity.groups import GroupMembershipResolver
from ad_identity.objects import Attribute, Name, ObjectClass
from ad_identity.utilities import ADUtilities


class TestADUtilities(unittest.TestCase):
    """Test cases for ADUtilities."""

    def setUp(self):
        """Set up test fixtures."""
        self.config = {
            'ad': {
                'default_people_container': 'ou=People,dc=example,dc=com',
                'uid_attribute': 'sAMAccountName',
                'posix_ref_attribute': 'uid'
            },
            'schema': {
                '__ACCOUNT__': {
                    'attributes': {
                        'sAMAccountName': {},
                        'email': {'ldap_name': 'mail'},
                        'pwdLastSet': {'readable': False, 'returned_by_default': False}
                    }
                }
            }
        }
        self.groups = Mock(spec=GroupMembershipResolver)
        self.groups.groups_for_dn.return_value = ['CN=Staff,OU=Groups,DC=example,DC=com']
        self.groups.posix_groups_for_refs.return_value = []
        self.utils = ADUtilities(self.config, groups=self.groups)

        self.directory = Mock()
        self.directory.search.return_value = [
            DirectoryEntry('CN=John Doe,OU=People,DC=example,DC=com', {
                'sAMAccountName': ['jdoe'],
                'mail': ['jdoe@example.com'],
                'userAccountControl': ['512'],
                'unicodePwd': ['"secret"'],
            }),
            DirectoryEntry('CN=Jane Roe,OU=People,DC=example,DC=com', {
                'sAMAccountName': ['jroe'],
                'userAccountControl': ['514'],
            }),
        ]

    def test_search_with_defaults(self):
        results = list(self.utils.search(
            self.directory, 'OU=People,DC=example,DC=com', '(objectClass=user)', ObjectClass.ACCOUNT
        ))

        base_dn, search_filter, physical = self.directory.search.call_args.args
        self.assertIn('mail', physical)
        self.assertIn('userAccountControl', physical)
        self.assertIn('sAMAccountName', physical)
        self.assertNotIn('unicodePwd', physical)

        self.assertEqual([r.uid.value for r in results], ['jdoe', 'jroe'])
        self.assertEqual(results[0].values('email'), ('jdoe@example.com',))
        self.assertTrue(results[0].enabled)
        self.assertFalse(results[1].enabled)
        self.assertIsNone(results[1].get('email'))
        self.assertIsNone(results[0].get('__PASSWORD__'))

    def test_search_with_requested_attributes(self):
        results = list(self.utils.search(
            self.directory, 'OU=People,DC=example,DC=com', '(objectClass=user)', ObjectClass.ACCOUNT,
            requested=['email', 'ldapGroups', 'posixGroups', 'pwdLastSet', '__PASSWORD__']
        ))

        physical = self.directory.search.call_args.args[2]
        self.assertIn('uid', physical)
        self.assertNotIn('ldapGroups', physical)
        self.assertNotIn('posixGroups', physical)
        self.assertNotIn('pwdLastSet', physical)

        first = results[0]
        self.assertEqual(first.values('ldapGroups'), ('CN=Staff,OU=Groups,DC=example,DC=com',))
        self.assertEqual(first.values('posixGroups'), ())
        self.assertTrue(first.get('__PASSWORD__').value.is_empty())
        self.assertIsNone(first.get('pwdLastSet'))

    def test_build_dn(self):
        self.assertEqual(self.utils.build_dn('jdoe'), 'cn=jdoe,ou=People,dc=example,dc=com')
        self.assertEqual(self.utils.build_dn('jdoe', 'John Doe'), 'cn=John Doe,ou=People,dc=example,dc=com')

    def test_entry_dn(self):
        self.assertEqual(
            self.utils.entry_dn(Name('cn=jdoe,ou=Staff,dc=example,dc=com')),
            'cn=jdoe,ou=Staff,dc=example,dc=com'
        )
        self.assertEqual(
            self.utils.entry_dn(Name('jdoe'), Attribute.build('cn', ['John Doe'])),
            'cn=John Doe,ou=People,dc=example,dc=com'
        )

    def test_static_helpers(self):
        self.assertTrue(ADUtilities.is_dn('cn=jdoe,dc=example,dc=com'))
        self.assertFalse(ADUtilities.is_dn('not a dn!!'))
        self.assertFalse(ADUtilities.decode_enabled('514'))

    def test_tombstone(self):
        identity = self.utils.materialize_tombstone(
            'OU=People,DC=example,DC=com', 'jdoe', self.directory.search.return_value[0], ObjectClass.ACCOUNT
        )
        self.assertEqual(identity.uid.value, 'jdoe')
        self.assertEqual(len(identity.attributes), 0)

    def test_invalid_container(self):
        self.config['ad']['default_people_container'] = 'People'
        with self.assertRaises(InvalidDNError):
            ADUtilities(self.config, groups=self.groups)


if __name__ == '__main__':
    unittest.main()
