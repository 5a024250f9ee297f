"""
Attribute names and flags shared across the mapping components.
"""

# Special identity object attribute names
NAME_ATTR = '__NAME__'
UID_ATTR = '__UID__'
PASSWORD_ATTR = '__PASSWORD__'
ENABLE_ATTR = '__ENABLE__'

# Virtual attributes with no physical backing in the directory schema
LDAP_GROUPS_ATTR = 'ldapGroups'
POSIX_GROUPS_ATTR = 'posixGroups'
VIRTUAL_GROUP_ATTRS = (LDAP_GROUPS_ATTR, POSIX_GROUPS_ATTR)

# Back-reference attribute matched against posixGroup memberUid values
POSIX_REF_ATTR = 'uid'

# Active Directory account control word and its "account disabled" bit
UACCONTROL_ATTR = 'userAccountControl'
UF_ACCOUNTDISABLE = 0x0002

# AD stores the password in unicodePwd; it can be written but never read back
AD_PASSWORD_ATTR = 'unicodePwd'

# Object class values
ACCOUNT_CLASS = '__ACCOUNT__'
GROUP_CLASS = '__GROUP__'
ANY_CLASS = '__ALL__'

# Name given to tombstone objects that no longer have a live entry
TOMBSTONE_NAME = 'fake-dn'
