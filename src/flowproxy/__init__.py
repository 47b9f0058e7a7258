# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""flowproxy: service configuration model for a reverse-proxy control plane."""

from .credentials import (
    Credential,
    DiagnosticSink,
    LoggerSink,
    generate_placeholder_credential,
    parse_credentials,
)
from .errors import ConfigurationError, MissingCoDependentFieldError
from .params import ServiceParams, service_from_mapping
from .proxy_config import ProxyConfig, config_from_env
from .service import (
    DestinationSpec,
    ServiceCollection,
    ServiceDescriptor,
    sort_by_acl_name,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "Credential",
    "DestinationSpec",
    "DiagnosticSink",
    "LoggerSink",
    "MissingCoDependentFieldError",
    "ProxyConfig",
    "ServiceCollection",
    "ServiceDescriptor",
    "ServiceParams",
    "config_from_env",
    "generate_placeholder_credential",
    "parse_credentials",
    "service_from_mapping",
    "sort_by_acl_name",
]
