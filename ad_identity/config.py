"""
Configuration loading and management for AD Identity Mapper.

This module handles loading configuration from YAML files and environment variables,
with validation and defaults.
"""

import os
import yaml
import logging
from typing import Dict, Any, Optional

from ad_identity.dn import is_dn

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing required fields."""
    pass


class ConfigLoader:
    """Handles loading and validation of application configuration."""

    # Environment variable mappings for sensitive fields
    ENV_OVERRIDES = {
        'ldap.bind_password': 'LDAP_BIND_PASSWORD',
        'ad.default_people_container': 'AD_DEFAULT_PEOPLE_CONTAINER',
    }

    SCHEMA_FLAGS = ('readable', 'returned_by_default', 'multi_valued')

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize config loader.

        Args:
            config_path: Path to config file. If None, uses CONFIG_PATH env var or 'config.yaml'
        """
        self.config_path = config_path or os.getenv('CONFIG_PATH', 'config.yaml')
        self.config = {}

    def load(self) -> Dict[str, Any]:
        """
        Load configuration from file and apply environment overrides.

        Returns:
            Parsed and validated configuration dictionary

        Raises:
            ConfigurationError: If config file not found or validation fails
        """
        try:
            with open(self.config_path, 'r') as f:
                self.config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigurationError(f"Configuration file not found: {self.config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file: {e}")

        if not isinstance(self.config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {self.config_path}")

        return self.load_dict(self.config)

    def load_dict(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply overrides, validation and defaults to an already parsed configuration.

        Raises:
            ConfigurationError: If validation fails
        """
        self.config = config

        # Apply environment variable overrides
        self._apply_env_overrides()

        # Validate configuration
        self._validate()

        # Apply defaults
        self._apply_defaults()

        logger.info(f"Configuration loaded successfully from {self.config_path}")
        return self.config

    def _apply_env_overrides(self):
        """Apply environment variable overrides for sensitive fields."""
        for config_key, env_var in self.ENV_OVERRIDES.items():
            env_value = os.getenv(env_var)
            if env_value:
                self._set_nested_value(self.config, config_key, env_value)
                logger.debug(f"Applied environment override for {config_key}")

    def _set_nested_value(self, config: Dict, key_path: str, value: Any):
        """Set a nested configuration value using dot notation."""
        keys = key_path.split('.')
        current = config
        for key in keys[:-1]:
            if key not in current or current[key] is None:
                current[key] = {}
            current = current[key]
        current[keys[-1]] = value

    def _validate(self):
        """Validate required configuration fields."""
        errors = []

        # Validate AD configuration
        ad_config = self.config.get('ad') or {}
        container = ad_config.get('default_people_container')
        if not container:
            errors.append("Missing required AD field: default_people_container")
        elif not is_dn(container):
            errors.append(f"Invalid DN for ad.default_people_container: {container}")

        group_base_dn = ad_config.get('group_base_dn')
        if group_base_dn and not is_dn(group_base_dn):
            errors.append(f"Invalid DN for ad.group_base_dn: {group_base_dn}")

        # LDAP connection is optional, but must be complete when present
        ldap_config = self.config.get('ldap')
        if ldap_config:
            for field in ['server_url', 'bind_dn', 'bind_password']:
                if not ldap_config.get(field):
                    errors.append(f"Missing required LDAP field: {field}")

        # Validate schema definitions
        schema = self.config.get('schema') or {}
        if not isinstance(schema, dict):
            errors.append("schema must be a mapping of object class to attributes")
            schema = {}

        for class_name, class_config in schema.items():
            attributes = (class_config or {}).get('attributes') or {}
            if not isinstance(attributes, dict):
                errors.append(f"schema.{class_name}.attributes must be a mapping")
                continue
            for attr_name, attr_config in attributes.items():
                prefix = f"schema.{class_name}.attributes.{attr_name}"
                attr_config = attr_config or {}
                for flag in self.SCHEMA_FLAGS:
                    if flag in attr_config and not isinstance(attr_config[flag], bool):
                        errors.append(f"{prefix}.{flag} must be true or false")
                attr_type = attr_config.get('type', 'string')
                if attr_type not in ('string', 'integer', 'boolean', 'binary', 'guardedstring'):
                    errors.append(f"Unsupported type for {prefix}: {attr_type}")

        if errors:
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors))

    def _apply_defaults(self):
        """Apply default values for optional configuration fields."""
        # AD defaults
        ad_defaults = {
            'uid_attribute': 'objectGUID',
            'name_attribute': 'distinguishedName',
            'posix_ref_attribute': 'uid',
            'group_object_classes': ['group', 'groupOfNames'],
            'group_member_attribute': 'member',
            'posix_group_object_class': 'posixGroup',
            'posix_member_attribute': 'memberUid',
            'group_base_dn': ''
        }
        ad_config = self.config['ad']
        for key, value in ad_defaults.items():
            ad_config.setdefault(key, value)

        # LDAP defaults, only when a connection is configured
        if self.config.get('ldap'):
            ldap_defaults = {
                'start_tls': False,
                'verify_ssl': True,
                'connection_timeout': 10,
                'receive_timeout': 10
            }
            for key, value in ldap_defaults.items():
                self.config['ldap'].setdefault(key, value)

        if self.config.get('schema') is None:
            self.config['schema'] = {}

        # Logging defaults
        logging_defaults = {
            'level': 'INFO',
            'log_dir': 'logs',
            'rotation': 'daily',
            'retention_days': 7
        }
        if not self.config.get('logging'):
            self.config['logging'] = {}
        logging_config = self.config['logging']
        for key, value in logging_defaults.items():
            logging_config.setdefault(key, value)


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to config file

    Returns:
        Loaded configuration dictionary
    """
    loader = ConfigLoader(config_path)
    return loader.load()
