# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Runtime configuration for flowproxy.

ProxyConfig holds the settings shared by every service of a
reconfiguration pass, such as the global user list applied to services
that declare no users of their own.

Configuration via environment variables:
    FLOWPROXY_USERS: Global credential list ("user:pass,user2:pass2")
    FLOWPROXY_USERS_PASS_ENCRYPTED: Global passwords are already hashed
    FLOWPROXY_SKIP_EMPTY_PASSWORD: Reject users without a password
    FLOWPROXY_LOG_LEVEL: Log level for the CLI (default: INFO)

Usage:
    # From environment (Docker/production):
    config = config_from_env()

    # Explicit configuration:
    config = ProxyConfig(users="admin:secret", skip_empty_password=True)
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .credentials import Credential, DiagnosticSink, parse_credentials

_TRUE_VALUES = ("1", "true", "yes")


@dataclass
class ProxyConfig:
    """Settings shared by all services."""

    users: str = ""
    """Global credential list, same grammar as per-service users."""

    users_pass_encrypted: bool = False
    """Whether global passwords are already hashed."""

    skip_empty_password: bool = False
    """Reject password-less users instead of accepting them."""

    log_level: str = "INFO"
    """Logging level name used by the CLI."""

    def global_credentials(self, sink: DiagnosticSink | None = None) -> list[Credential]:
        """Parse the global user list, reporting problems under context "global"."""
        return parse_credentials(
            "global",
            self.users,
            encrypted=self.users_pass_encrypted,
            skip_empty_password=self.skip_empty_password,
            sink=sink,
        )


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in _TRUE_VALUES


def config_from_env() -> ProxyConfig:
    """Build ProxyConfig from FLOWPROXY_* environment variables.

    Returns:
        ProxyConfig instance populated from environment.
    """
    return ProxyConfig(
        users=os.environ.get("FLOWPROXY_USERS", ""),
        users_pass_encrypted=_env_flag("FLOWPROXY_USERS_PASS_ENCRYPTED"),
        skip_empty_password=_env_flag("FLOWPROXY_SKIP_EMPTY_PASSWORD"),
        log_level=os.environ.get("FLOWPROXY_LOG_LEVEL", "INFO").upper(),
    )


__all__ = ["ProxyConfig", "config_from_env"]
