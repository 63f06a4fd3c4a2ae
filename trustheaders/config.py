# -*- coding: utf-8 -*-
"""Location: ./trustheaders/config.py
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti

Trust headers configuration settings.
This module defines configuration settings using Pydantic.
It loads configuration from environment variables (prefixed with
``TRUSTHEADERS_``) or a ``.env`` file, with sensible defaults.

Examples:
    >>> s = Settings(_env_file=None)
    >>> s.ldap_user_search_filter
    '(uid={0})'
    >>> s.users_search_base
    'ou=users,dc=example,dc=org'
"""

# Standard
from functools import lru_cache
from pathlib import Path
from typing import Optional

# Third-Party
from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for LDAP access, header mappings and reporting."""

    model_config = SettingsConfigDict(env_prefix="TRUSTHEADERS_", env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # LDAP connection
    ldap_url: str = "ldap://localhost:389"
    ldap_base_dn: str = "dc=example,dc=org"
    ldap_bind_dn: Optional[str] = None
    ldap_bind_password: Optional[SecretStr] = None
    ldap_connect_timeout: int = 5
    ldap_receive_timeout: int = 15

    # Directory layout
    ldap_users_rdn: str = "ou=users"
    ldap_orgs_rdn: str = "ou=orgs"
    ldap_user_search_filter: str = "(uid={0})"
    ldap_member_of_attribute: str = "memberOf"
    ldap_org_name_attribute: str = "o"

    # Headers
    headers_mapping_file: Optional[Path] = None
    pre_authenticated_header: str = "sec-preauthenticated"
    org_header: str = "sec-org"
    org_name_header: str = "sec-orgname"

    # Reporting
    database_url: str = "sqlite:///./ogcstatistics.db"

    log_level: str = "INFO"

    @property
    def users_search_base(self) -> str:
        """Absolute DN under which users are searched.

        Returns:
            str: ``<users rdn>,<base dn>``, or the base DN alone when no users RDN is set.

        Examples:
            >>> Settings(_env_file=None, ldap_users_rdn="").users_search_base
            'dc=example,dc=org'
        """
        if not self.ldap_users_rdn:
            return self.ldap_base_dn
        return f"{self.ldap_users_rdn},{self.ldap_base_dn}"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: A cached instance of the Settings class.

    Examples:
        >>> get_settings() is get_settings()
        True
    """
    return Settings()


settings = get_settings()
