"""
AD Identity Mapper - Translate Active Directory LDAP entries into identity objects.

This package provides the mapping rules used by an identity-provisioning
connector: which attributes to fetch from the directory, how fetched entries
become identity objects, and how distinguished names are built and validated.
"""

__version__ = "1.0.0"
__author__ = "AD Identity Mapper Team"
