# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Configuration errors raised while building service descriptors."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Raised when service configuration input cannot be used."""

    pass


class MissingCoDependentFieldError(ConfigurationError):
    """Raised when one field of a co-required pair is set without its partner.

    Attributes:
        service_name: Service being configured (may be empty).
        present: Name of the field that is set.
        missing: Name of the partner field that is not set.
    """

    def __init__(self, service_name: str, present: str, missing: str):
        self.service_name = service_name
        self.present = present
        self.missing = missing
        target = f"service '{service_name}'" if service_name else "service"
        super().__init__(f"{target}: '{present}' is set but '{missing}' is not; both are required")


__all__ = ["ConfigurationError", "MissingCoDependentFieldError"]
