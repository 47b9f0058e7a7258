# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Service descriptors: the desired proxy configuration of one service.

A ServiceDescriptor is built once per reconfiguration pass from raw
input (see flowproxy.params), validated, then handed read-only to the
template renderer. Each field maps to a template variable of the same
name in camelCase (see ServiceDescriptor.to_template_vars()).

Components:
    DestinationSpec: One routable destination (internal port, paths, entry port).
    ServiceDescriptor: Routing, ACL, TLS, auth and template settings of a service.
    ServiceCollection: Ordered descriptors, sortable by ACL name.
    sort_by_acl_name(): In-place declaration-order sort.

ACL ordering:
    The proxy evaluates ACLs top-down and the first match wins, so the
    renderer declares service blocks in ServiceCollection order. Sorting
    is stable: services sharing an ACL name keep their input order.

Example:
    ::

        services = ServiceCollection([
            ServiceDescriptor(service_name="web", acl_name="zz-web"),
            ServiceDescriptor(service_name="api"),
        ])
        services.sort_by_acl_name()
        services.acl_names()  # ["api", "zz-web"]
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from .credentials import Credential, generate_placeholder_credential
from .errors import ConfigurationError, MissingCoDependentFieldError

logger = logging.getLogger(__name__)

DEFAULT_REQ_MODE = "http"
DEFAULT_PATH_TYPE = "path_beg"
SNI_REQ_MODE = "sni"

# (field, partner) pairs that must be set together
CO_REQUIRED_FIELDS = (
    ("req_path_search", "req_path_replace"),
    ("template_fe_path", "template_be_path"),
    ("consul_template_fe_path", "consul_template_be_path"),
)


@dataclass
class DestinationSpec:
    """One destination of a service.

    Attributes:
        internal_port: Port the service listens on inside the cluster.
        url_path_segments: URL paths routed to this destination.
        source_port: Entry port on the proxy; 0 means the default frontend.
        source_port_acl: ACL rule bound to the entry port.
        source_port_acl_name: Name of that ACL.
    """

    internal_port: str = ""
    url_path_segments: list[str] = field(default_factory=list)
    source_port: int = 0
    source_port_acl: str = ""
    source_port_acl_name: str = ""

    @property
    def has_source_port(self) -> bool:
        return self.source_port > 0

    def to_template_vars(self) -> dict[str, Any]:
        return {
            "port": self.internal_port,
            "servicePath": list(self.url_path_segments),
            "srcPort": self.source_port,
            "srcPortAcl": self.source_port_acl,
            "srcPortAclName": self.source_port_acl_name,
        }


@dataclass
class ServiceDescriptor:
    """Desired proxy configuration for one service.

    Defaults are applied on construction: a blank ``acl_name`` becomes
    ``service_name``, a blank ``req_mode`` becomes ``"http"`` and a blank
    ``path_type`` becomes ``"path_beg"``. Co-required pairs are checked
    right after, so an instance that exists is a valid one.

    With ``req_mode="sni"`` the service is routed over TCP by certificate
    name; URL paths and path rewrites are kept but ignored by the renderer.

    Raises:
        ConfigurationError: If neither acl_name nor service_name is set.
        MissingCoDependentFieldError: If only one field of a pair is set.
    """

    service_name: str = ""
    """Name of the service as registered in swarm or Consul."""

    acl_name: str = ""
    """ACL name; services are declared in ACL name order. Defaults to service_name."""

    req_mode: str = DEFAULT_REQ_MODE
    """Request mode: http, tcp, or sni (TCP routed by certificate name)."""

    path_type: str = DEFAULT_PATH_TYPE
    """ACL derivative used for path matching."""

    req_path_search: str = ""
    """Regular expression searched in the request path. Requires req_path_replace."""

    req_path_replace: str = ""
    """Replacement for req_path_search matches. Requires req_path_search."""

    req_rep_search: str = ""
    """Deprecated in favor of req_path_search."""

    req_rep_replace: str = ""
    """Deprecated in favor of req_path_replace."""

    service_domain: list[str] = field(default_factory=list)
    """Domains the service answers on. Empty means any domain."""

    service_domain_match_all: bool = False
    """Also match subdomains of service_domain."""

    https_only: bool = False
    """Redirect all http requests to https."""

    https_port: int = 0
    """Internal HTTPS port of the service (swarm mode)."""

    redirect_when_http_proto: bool = False
    """Redirect to https when X-Forwarded-Proto is http."""

    ssl_verify_none: bool = False
    """Skip verification of backend server certificates."""

    service_cert: str = ""
    """PEM certificate content, stored verbatim."""

    template_fe_path: str = ""
    """Frontend template snippet path. Requires template_be_path."""

    template_be_path: str = ""
    """Backend template snippet path. Requires template_fe_path."""

    consul_template_fe_path: str = ""
    """Consul Template frontend snippet path. Requires consul_template_be_path."""

    consul_template_be_path: str = ""
    """Consul Template backend snippet path. Requires consul_template_fe_path."""

    timeout_server: str = ""
    """Server timeout in seconds."""

    timeout_tunnel: str = ""
    """Tunnel timeout in seconds."""

    destinations: list[DestinationSpec] = field(default_factory=list)
    """Destinations in dispatch order."""

    credentials: list[Credential] = field(default_factory=list)
    """Basic-auth users of this service."""

    distribute: bool = False
    """Send the reconfiguration to every proxy instance (swarm mode)."""

    outbound_hostname: str = ""
    """Host to dispatch requests to when the service runs elsewhere."""

    skip_check: bool = False
    """Do not add health checks for this service."""

    lookup_retry: int = 0
    """Number of service lookup attempts (swarm mode)."""

    lookup_retry_interval: int = 0
    """Milliseconds between service lookup attempts."""

    service_color: str = ""
    """Color of a blue-green deployment, set by the discovery layer."""

    service_port: str = ""
    """Port of the running service, set by the discovery layer."""

    acl_condition: str = ""
    """Extra ACL condition, set by the discovery layer."""

    full_service_name: str = ""
    """Service name including its color suffix."""

    host: str = ""
    """Host the service is reached on."""

    def __post_init__(self) -> None:
        if not self.acl_name:
            self.acl_name = self.service_name
        if not self.req_mode:
            self.req_mode = DEFAULT_REQ_MODE
        if not self.path_type:
            self.path_type = DEFAULT_PATH_TYPE
        self._apply_deprecated_rewrite()

        seen: set[str] = set()
        domains = []
        for domain in self.service_domain:
            if domain and domain not in seen:
                seen.add(domain)
                domains.append(domain)
        self.service_domain = domains

        self.validate()

    def _apply_deprecated_rewrite(self) -> None:
        """Use the reqRep* pair only when no reqPath* field is set."""
        if self.req_path_search or self.req_path_replace:
            return
        if self.req_rep_search or self.req_rep_replace:
            logger.warning(
                "Service %s uses deprecated reqRepSearch/reqRepReplace, "
                "use reqPathSearch/reqPathReplace instead",
                self.service_name,
            )
            self.req_path_search = self.req_rep_search
            self.req_path_replace = self.req_rep_replace

    def validate(self) -> None:
        """Check invariants that may break while the descriptor is being filled in.

        Raises:
            ConfigurationError: If neither acl_name nor service_name is set.
            MissingCoDependentFieldError: If only one field of a pair is set.
        """
        if not self.acl_name:
            self.acl_name = self.service_name
        if not self.acl_name:
            raise ConfigurationError("service has neither 'acl_name' nor 'service_name'")
        for first, second in CO_REQUIRED_FIELDS:
            first_set = bool(getattr(self, first))
            second_set = bool(getattr(self, second))
            if first_set and not second_set:
                raise MissingCoDependentFieldError(self.service_name, first, second)
            if second_set and not first_set:
                raise MissingCoDependentFieldError(self.service_name, second, first)

    @property
    def is_sni(self) -> bool:
        """True if routed by certificate name over TCP instead of by path."""
        return self.req_mode == SNI_REQ_MODE

    @property
    def matches_all_domains(self) -> bool:
        """Whether subdomains are matched; only meaningful with a domain list."""
        return self.service_domain_match_all and bool(self.service_domain)

    @property
    def has_credentials(self) -> bool:
        return bool(self.credentials)

    def ensure_credentials(self) -> bool:
        """Add a placeholder credential if the service has none.

        Keeps auth enabled for services that must not be reachable
        anonymously even though no users were configured.

        Returns:
            True if a placeholder was added.
        """
        if self.credentials:
            return False
        self.credentials.append(generate_placeholder_credential())
        logger.info("Service %s has no users, auth enabled with a placeholder user", self.service_name)
        return True

    def to_template_vars(self) -> dict[str, Any]:
        """Export fields under their template variable names.

        Credential passwords are included as-is since the renderer needs
        them; callers must not log the result.
        """
        return {
            "serviceName": self.service_name,
            "aclName": self.acl_name,
            "reqMode": self.req_mode,
            "pathType": self.path_type,
            "reqPathSearch": self.req_path_search,
            "reqPathReplace": self.req_path_replace,
            "serviceDomain": list(self.service_domain),
            "serviceDomainMatchAll": self.matches_all_domains,
            "httpsOnly": self.https_only,
            "httpsPort": self.https_port,
            "redirectWhenHttpProto": self.redirect_when_http_proto,
            "sslVerifyNone": self.ssl_verify_none,
            "serviceCert": self.service_cert,
            "templateFePath": self.template_fe_path,
            "templateBePath": self.template_be_path,
            "consulTemplateFePath": self.consul_template_fe_path,
            "consulTemplateBePath": self.consul_template_be_path,
            "timeoutServer": self.timeout_server,
            "timeoutTunnel": self.timeout_tunnel,
            "serviceDest": [dest.to_template_vars() for dest in self.destinations],
            "users": [
                {
                    "username": cred.username,
                    "password": cred.password,
                    "passEncrypted": cred.encrypted,
                }
                for cred in self.credentials
            ],
            "distribute": self.distribute,
            "outboundHostname": self.outbound_hostname,
            "skipCheck": self.skip_check,
            "lookupRetry": self.lookup_retry,
            "lookupRetryInterval": self.lookup_retry_interval,
            "serviceColor": self.service_color,
            "servicePort": self.service_port,
            "aclCondition": self.acl_condition,
            "fullServiceName": self.full_service_name,
            "host": self.host,
        }


def _acl_key(service: ServiceDescriptor) -> str:
    return service.acl_name


class ServiceCollection:
    """Ordered ServiceDescriptor sequence handed to the renderer.

    Not thread-safe. Sort a private collection, or use sorted_by_acl_name()
    and swap the result in, rather than sorting one that others are reading.
    """

    def __init__(self, services: Iterable[ServiceDescriptor] | None = None):
        self._services: list[ServiceDescriptor] = list(services or [])

    def __iter__(self) -> Iterator[ServiceDescriptor]:
        return iter(self._services)

    def __len__(self) -> int:
        return len(self._services)

    def __getitem__(self, index: int) -> ServiceDescriptor:
        return self._services[index]

    def __repr__(self) -> str:
        return f"ServiceCollection({self.acl_names()!r})"

    def add(self, service: ServiceDescriptor) -> None:
        self._services.append(service)

    def acl_names(self) -> list[str]:
        return [service.acl_name for service in self._services]

    def sort_by_acl_name(self) -> None:
        """Sort in place by ACL name, ascending; equal names keep their order."""
        self._services.sort(key=_acl_key)

    def sorted_by_acl_name(self) -> ServiceCollection:
        """Return a new collection sorted by ACL name, leaving this one untouched."""
        return ServiceCollection(sorted(self._services, key=_acl_key))


def sort_by_acl_name(collection: ServiceCollection) -> ServiceCollection:
    """Sort ``collection`` in place into declaration order and return it."""
    collection.sort_by_acl_name()
    return collection


__all__ = [
    "CO_REQUIRED_FIELDS",
    "DEFAULT_PATH_TYPE",
    "DEFAULT_REQ_MODE",
    "SNI_REQ_MODE",
    "DestinationSpec",
    "ServiceCollection",
    "ServiceDescriptor",
    "sort_by_acl_name",
]
