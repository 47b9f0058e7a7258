# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: a diagnostic sink that records reports."""

from __future__ import annotations

import pytest


class RecordingSink:
    """DiagnosticSink that keeps (context, message) reports in memory."""

    def __init__(self):
        self.reports: list[tuple[str, str]] = []

    def report(self, context: str, message: str) -> None:
        self.reports.append((context, message))


@pytest.fixture
def sink() -> RecordingSink:
    """Fresh recording sink."""
    return RecordingSink()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FLOWPROXY_* variables from the host out of tests."""
    for name in (
        "FLOWPROXY_USERS",
        "FLOWPROXY_USERS_PASS_ENCRYPTED",
        "FLOWPROXY_SKIP_EMPTY_PASSWORD",
        "FLOWPROXY_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
