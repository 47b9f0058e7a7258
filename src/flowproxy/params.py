# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Raw service parameters: from label/query mappings to ServiceDescriptor.

Discovery backends hand over flat string mappings such as container
labels or reconfigure query parameters, keyed by camelCase names::

    {
        "serviceName": "checkout",
        "servicePath": "/cart,/pay",
        "port": "8080",
        "users": "alice:secret",
        "port.1": "9090",
        "srcPort.1": "9443",
    }

ServiceParams validates and coerces such a mapping with Pydantic and
builds a ServiceDescriptor from it.

Destinations:
    The plain keys (port, servicePath, srcPort, srcPortAcl, srcPortAclName)
    describe the first destination. Indexed keys (``port.1``,
    ``servicePath.1``, ...) describe further destinations, added in
    ascending index order after the plain one.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .credentials import DiagnosticSink, parse_credentials
from .errors import ConfigurationError
from .proxy_config import ProxyConfig
from .service import DestinationSpec, ServiceDescriptor

_INDEXED_KEY = re.compile(r"^(port|servicePath|srcPort|srcPortAcl|srcPortAclName)\.(\d+)$")


def _camel(name: str) -> str:
    first, *rest = name.split("_")
    return first + "".join(word.capitalize() for word in rest)


def _split_list(value: Any) -> Any:
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class DestinationParams(BaseModel):
    """Raw parameters of one destination."""

    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True)

    port: str = ""
    service_path: list[str] = []
    src_port: int = 0
    src_port_acl: str = ""
    src_port_acl_name: str = ""

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @field_validator("service_path", mode="before")
    @classmethod
    def _split_paths(cls, v: Any) -> Any:
        return _split_list(v)

    @field_validator("src_port", mode="before")
    @classmethod
    def _blank_port(cls, v: Any) -> Any:
        return 0 if v == "" else v

    @property
    def is_set(self) -> bool:
        return bool(
            self.port
            or self.service_path
            or self.src_port
            or self.src_port_acl
            or self.src_port_acl_name
        )

    def to_destination(self) -> DestinationSpec:
        return DestinationSpec(
            internal_port=self.port,
            url_path_segments=list(self.service_path),
            source_port=self.src_port,
            source_port_acl=self.src_port_acl,
            source_port_acl_name=self.src_port_acl_name,
        )


class ServiceParams(DestinationParams):
    """Raw parameters of a service, validated and coerced.

    Unknown keys are accepted and ignored, except indexed destination
    keys which are collected into extra destinations.
    """

    model_config = ConfigDict(alias_generator=_camel, populate_by_name=True, extra="allow")

    service_name: str = Field(min_length=1)
    acl_name: str = ""
    req_mode: str = ""
    path_type: str = ""
    req_path_search: str = ""
    req_path_replace: str = ""
    req_rep_search: str = ""
    req_rep_replace: str = ""
    service_domain: list[str] = []
    service_domain_match_all: bool = False
    https_only: bool = False
    https_port: int = 0
    redirect_when_http_proto: bool = False
    ssl_verify_none: bool = False
    service_cert: str = ""
    template_fe_path: str = ""
    template_be_path: str = ""
    consul_template_fe_path: str = ""
    consul_template_be_path: str = ""
    timeout_server: str = ""
    timeout_tunnel: str = ""
    users: str = ""
    users_pass_encrypted: bool = False
    distribute: bool = False
    outbound_hostname: str = ""
    skip_check: bool = False
    lookup_retry: int = 0
    lookup_retry_interval: int = 0
    service_color: str = ""
    service_port: str = ""
    acl_condition: str = ""
    full_service_name: str = ""
    host: str = ""

    @field_validator("service_domain", mode="before")
    @classmethod
    def _split_domains(cls, v: Any) -> Any:
        return _split_list(v)

    @field_validator(
        "https_port",
        "lookup_retry",
        "lookup_retry_interval",
        "service_domain_match_all",
        "https_only",
        "redirect_when_http_proto",
        "ssl_verify_none",
        "users_pass_encrypted",
        "distribute",
        "skip_check",
        mode="before",
    )
    @classmethod
    def _blank_is_default(cls, v: Any) -> Any:
        return 0 if v == "" else v

    @field_validator("timeout_server", "timeout_tunnel", "service_port", mode="before")
    @classmethod
    def _number_as_str(cls, v: Any) -> Any:
        return str(v) if isinstance(v, int) else v

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> ServiceParams:
        """Validate a raw mapping.

        Raises:
            ConfigurationError: If a value cannot be coerced or serviceName is missing or empty.
        """
        try:
            return cls.model_validate(dict(raw))
        except ValidationError as e:
            name = raw.get("serviceName") or raw.get("service_name") or "?"
            raise ConfigurationError(f"Invalid parameters for service '{name}': {e}") from e

    def indexed_destinations(self) -> list[DestinationParams]:
        """Destinations declared with indexed keys, in ascending index order."""
        grouped: dict[int, dict[str, Any]] = {}
        for key, value in (self.model_extra or {}).items():
            match = _INDEXED_KEY.match(key)
            if match:
                grouped.setdefault(int(match.group(2)), {})[match.group(1)] = value

        result = []
        for index in sorted(grouped):
            try:
                result.append(DestinationParams.model_validate(grouped[index]))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid destination {index} for service '{self.service_name}': {e}"
                ) from e
        return result

    def destinations(self) -> list[DestinationSpec]:
        dests = [self.to_destination()] if self.is_set else []
        dests.extend(d.to_destination() for d in self.indexed_destinations() if d.is_set)
        return dests

    def to_service(
        self,
        config: ProxyConfig | None = None,
        sink: DiagnosticSink | None = None,
    ) -> ServiceDescriptor:
        """Build the ServiceDescriptor described by these parameters.

        Service users are parsed with the service name as diagnostic
        context. When the service declares no users, the global users
        of ``config`` are used instead.

        Raises:
            MissingCoDependentFieldError: If a co-required pair is half set.
        """
        config = config or ProxyConfig()
        if self.users:
            credentials = parse_credentials(
                self.service_name,
                self.users,
                encrypted=self.users_pass_encrypted,
                skip_empty_password=config.skip_empty_password,
                sink=sink,
            )
        else:
            credentials = config.global_credentials(sink)

        return ServiceDescriptor(
            service_name=self.service_name,
            acl_name=self.acl_name,
            req_mode=self.req_mode,
            path_type=self.path_type,
            req_path_search=self.req_path_search,
            req_path_replace=self.req_path_replace,
            req_rep_search=self.req_rep_search,
            req_rep_replace=self.req_rep_replace,
            service_domain=list(self.service_domain),
            service_domain_match_all=self.service_domain_match_all,
            https_only=self.https_only,
            https_port=self.https_port,
            redirect_when_http_proto=self.redirect_when_http_proto,
            ssl_verify_none=self.ssl_verify_none,
            service_cert=self.service_cert,
            template_fe_path=self.template_fe_path,
            template_be_path=self.template_be_path,
            consul_template_fe_path=self.consul_template_fe_path,
            consul_template_be_path=self.consul_template_be_path,
            timeout_server=self.timeout_server,
            timeout_tunnel=self.timeout_tunnel,
            destinations=self.destinations(),
            credentials=credentials,
            distribute=self.distribute,
            outbound_hostname=self.outbound_hostname,
            skip_check=self.skip_check,
            lookup_retry=self.lookup_retry,
            lookup_retry_interval=self.lookup_retry_interval,
            service_color=self.service_color,
            service_port=self.service_port,
            acl_condition=self.acl_condition,
            full_service_name=self.full_service_name,
            host=self.host,
        )


def service_from_mapping(
    raw: Mapping[str, Any],
    config: ProxyConfig | None = None,
    sink: DiagnosticSink | None = None,
) -> ServiceDescriptor:
    """Validate ``raw`` and build its ServiceDescriptor in one step.

    Raises:
        ConfigurationError: On invalid values or a half-set co-required pair.
    """
    return ServiceParams.from_mapping(raw).to_service(config=config, sink=sink)


__all__ = ["DestinationParams", "ServiceParams", "service_from_mapping"]
