# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Basic-auth credentials for proxied services.

Credentials arrive as a single delimited string (CLI flag, container
label or environment variable) and are parsed fail-soft: a malformed
entry is reported and dropped, the rest of the list is still used.

Grammar:
    Entries are separated by newline or comma. Each entry is either
    ``username`` or ``username:password``. Whitespace around entries and
    around both halves is trimmed. The entry is split at the first colon,
    so passwords may contain colons but usernames cannot.

Components:
    Credential: Immutable username/password pair.
    DiagnosticSink: Protocol for reporting rejected entries.
    LoggerSink: Default sink writing warnings to the module logger.
    parse_credentials(): Parse a raw credential string.
    generate_placeholder_credential(): Synthetic pre-encrypted credential.

Example:
    ::

        users = parse_credentials("checkout", "alice:secret,bob:pw2")
        [u.username for u in users]  # ["alice", "bob"]
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)

PLACEHOLDER_USERNAME = "dummyUser"

_ENTRY_DELIMITERS = ("\n", ",")
_ENTRY_STRIP = "\n\t "
_HALF_STRIP = "\t "


@dataclass(frozen=True)
class Credential:
    """Username/password pair used for HTTP basic auth.

    Attributes:
        username: Login name, never empty.
        password: Password, possibly empty when password-less users are allowed.
        encrypted: True if the password is already hashed.
        generated: True only for credentials made by
            generate_placeholder_credential(); never set by parsing.
    """

    username: str
    password: str = field(default="", repr=False)
    encrypted: bool = False
    generated: bool = field(default=False, init=False, compare=False)

    @property
    def has_password(self) -> bool:
        return self.password != ""

    @property
    def is_placeholder(self) -> bool:
        """True for credentials made by generate_placeholder_credential()."""
        return self.generated


class DiagnosticSink(Protocol):
    """Receives reports about credential entries that were dropped."""

    def report(self, context: str, message: str) -> None: ...


class LoggerSink:
    """DiagnosticSink that logs each report as a warning."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def report(self, context: str, message: str) -> None:
        self.log.warning("For service %s %s", context, message)


def _split_entries(raw: str) -> list[str]:
    """Split on every delimiter, keeping empty pieces for the caller to drop."""
    pieces = [raw]
    for delimiter in _ENTRY_DELIMITERS:
        pieces = [part for piece in pieces for part in piece.split(delimiter)]
    return pieces


def parse_credentials(
    context: str,
    raw: str,
    encrypted: bool = False,
    skip_empty_password: bool = False,
    sink: DiagnosticSink | None = None,
) -> list[Credential]:
    """Parse a delimited credential string into Credential values.

    Args:
        context: Name reported with diagnostics, usually the service name.
        raw: Raw credential list.
        encrypted: Whether the passwords in ``raw`` are already hashed.
        skip_empty_password: If True, entries without a password are
            rejected instead of accepted with an empty password.
        sink: Where rejected entries are reported. Defaults to LoggerSink.

    Returns:
        Credentials in the order they appear in ``raw``. Duplicates are kept.
    """
    collected: list[Credential] = []
    if not raw:
        return collected

    sink = sink or LoggerSink()
    for token in _split_entries(raw):
        entry = token.strip(_ENTRY_STRIP)
        if not entry:
            continue

        if ":" in entry:
            name, _, password = entry.partition(":")
            name = name.strip(_HALF_STRIP)
            password = password.strip(_HALF_STRIP)
            if not name or not password:
                sink.report(context, "there is an invalid user with no name or invalid format")
                continue
            collected.append(Credential(username=name, password=password, encrypted=encrypted))
        elif skip_empty_password:
            sink.report(context, f"there is an user {entry} with no password which is not allowed here")
        else:
            collected.append(Credential(username=entry, password="", encrypted=encrypted))

    return collected


def _to_base3(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 3)
        digits.append(str(rem))
    return "".join(reversed(digits))


def generate_placeholder_credential() -> Credential:
    """Build a throwaway credential that nobody can log in with.

    Used when auth must be enabled but no real credentials were supplied.
    The password is a random 63-bit number written in base 3 and flagged
    as already encrypted, so it never matches a typed password.
    """
    cred = Credential(
        username=PLACEHOLDER_USERNAME,
        password=_to_base3(secrets.randbits(63)),
        encrypted=True,
    )
    object.__setattr__(cred, "generated", True)
    return cred


__all__ = [
    "PLACEHOLDER_USERNAME",
    "Credential",
    "DiagnosticSink",
    "LoggerSink",
    "generate_placeholder_credential",
    "parse_credentials",
]
