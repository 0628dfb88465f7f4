"""Configuration loader for the resolver."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError


class ZoneConfig(BaseModel):
    zone_name: Optional[str] = Field(default=None, description="Defaults to the directory domain root")
    server_address: Optional[str] = Field(default=None, description="Defaults to the nearest domain controller")
    source: Literal["axfr", "ldap"] = Field(default="axfr")
    timeout_seconds: float = Field(default=30.0, gt=0)


class LdapConfig(BaseModel):
    server: Optional[str] = Field(default=None, description="Defaults to the discovered domain controller")
    port: int = Field(default=389, ge=1, le=65535)
    use_ssl: bool = Field(default=False)
    authentication: Literal["anonymous", "simple", "ntlm"] = Field(default="ntlm")
    user: Optional[str] = None
    password: Optional[str] = None
    base_dn: Optional[str] = Field(default=None, description="Defaults to the server's defaultNamingContext")
    timeout_seconds: float = Field(default=10.0, gt=0)
    page_size: int = Field(default=500, ge=1)


class DiscoveryConfig(BaseModel):
    srv_prefix: str = Field(default="_ldap._tcp.dc._msdcs")
    timeout_seconds: float = Field(default=5.0, gt=0)


class ResolverConfig(BaseModel):
    domain: Optional[str] = Field(default=None, description="Directory domain root, e.g. corp.example.com")
    zone: ZoneConfig = Field(default_factory=ZoneConfig)
    ldap: LdapConfig = Field(default_factory=LdapConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)

    @classmethod
    def load(cls, path: str) -> "ResolverConfig":
        cfg_path = Path(path)
        if not cfg_path.exists():
            raise FileNotFoundError(f"Resolver config not found: {cfg_path}")
        try:
            raw = yaml.safe_load(cfg_path.read_text()) or {}
            return cls(**raw).with_env_overrides()
        except ValidationError as exc:
            raise ValueError(f"Invalid resolver config: {exc}") from exc

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        return cls().with_env_overrides()

    def with_env_overrides(self) -> "ResolverConfig":
        """Fill unset values from ADRESOLVE_* environment variables."""
        cfg = self.model_copy(deep=True)
        cfg.domain = cfg.domain or os.getenv("ADRESOLVE_DOMAIN") or None
        cfg.zone.server_address = cfg.zone.server_address or os.getenv("ADRESOLVE_DNS_SERVER") or None
        cfg.ldap.server = cfg.ldap.server or os.getenv("ADRESOLVE_LDAP_SERVER") or None
        cfg.ldap.user = cfg.ldap.user or os.getenv("ADRESOLVE_LDAP_USER") or None
        cfg.ldap.password = cfg.ldap.password or os.getenv("ADRESOLVE_LDAP_PASSWORD") or None
        return cfg
