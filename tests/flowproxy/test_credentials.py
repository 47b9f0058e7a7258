# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for credential parsing and placeholder credentials."""

import logging

import pytest

from flowproxy.credentials import (
    PLACEHOLDER_USERNAME,
    Credential,
    LoggerSink,
    generate_placeholder_credential,
    parse_credentials,
)


class TestCredential:
    """Tests for the Credential value."""

    def test_has_password(self):
        """has_password is True only for a non-empty password."""
        assert Credential("alice", "secret").has_password is True
        assert Credential("alice", "").has_password is False

    def test_is_immutable(self):
        """Credential fields cannot be reassigned."""
        cred = Credential("alice", "secret")
        with pytest.raises(AttributeError):
            cred.password = "other"  # type: ignore[misc]

    def test_repr_hides_password(self):
        """repr() never shows the password."""
        assert "secret" not in repr(Credential("alice", "secret"))

    def test_is_placeholder(self):
        """Hand-built credentials are never placeholders, even with the sentinel name."""
        assert Credential(PLACEHOLDER_USERNAME, "1", encrypted=True).is_placeholder is False
        assert Credential("alice", "1", encrypted=True).is_placeholder is False

    def test_parsed_sentinel_user_is_not_placeholder(self):
        """A real user named like the placeholder keeps its credentials."""
        [cred] = parse_credentials("web", f"{PLACEHOLDER_USERNAME}:$apr1$x", encrypted=True)
        assert cred.username == PLACEHOLDER_USERNAME
        assert cred.is_placeholder is False


class TestParseCredentials:
    """Tests for parse_credentials()."""

    @pytest.mark.parametrize("encrypted", [True, False])
    @pytest.mark.parametrize("skip", [True, False])
    def test_empty_string_returns_empty_list(self, sink, encrypted, skip):
        """Empty input yields no credentials and no reports."""
        assert parse_credentials("svc", "", encrypted, skip, sink=sink) == []
        assert sink.reports == []

    def test_comma_and_newline_delimiters(self, sink):
        """Entries separated by comma or newline are all parsed, in order."""
        result = parse_credentials("svc", "alice:secret,bob:pw2\ncarol:pw3", False, False, sink=sink)
        assert result == [
            Credential("alice", "secret", False),
            Credential("bob", "pw2", False),
            Credential("carol", "pw3", False),
        ]
        assert sink.reports == []

    def test_malformed_and_bare_entries_dropped(self, sink):
        """Empty halves are malformed; bare names are rejected when skipping."""
        result = parse_credentials("svc", "dave:,:pw,eve", False, True, sink=sink)
        assert result == []
        assert len(sink.reports) == 3
        assert all(context == "svc" for context, _ in sink.reports)
        assert "invalid user" in sink.reports[0][1]
        assert "invalid user" in sink.reports[1][1]
        assert "eve" in sink.reports[2][1]
        assert "no password" in sink.reports[2][1]

    def test_whitespace_trimmed(self, sink):
        """Whitespace is trimmed around entries and around both halves."""
        result = parse_credentials("svc", "  frank : pw4  ", False, False, sink=sink)
        assert result == [Credential("frank", "pw4", False)]

    def test_tabs_and_newlines_trimmed(self, sink):
        """Tabs and newlines around entries are not part of the values."""
        result = parse_credentials("svc", "\talice:\tsecret\t\n\n", sink=sink)
        assert result == [Credential("alice", "secret")]

    def test_bare_username_accepted(self, sink):
        """Bare usernames get an empty password when not skipping."""
        result = parse_credentials("svc", "alice,bob", encrypted=True, skip_empty_password=False, sink=sink)
        assert result == [Credential("alice", "", True), Credential("bob", "", True)]
        assert not any(cred.has_password for cred in result)
        assert sink.reports == []

    def test_empty_tokens_silently_dropped(self, sink):
        """Consecutive delimiters do not produce reports."""
        result = parse_credentials("svc", ",,alice:a,\n , \n,bob:b,", sink=sink)
        assert [c.username for c in result] == ["alice", "bob"]
        assert sink.reports == []

    def test_split_at_first_colon(self, sink):
        """Passwords may contain colons."""
        result = parse_credentials("svc", "alice:se:cr:et", sink=sink)
        assert result == [Credential("alice", "se:cr:et")]

    def test_encrypted_flag_propagated(self, sink):
        """The encrypted flag is set on every parsed credential."""
        result = parse_credentials("svc", "alice:$apr1$x,bob:$apr1$y", encrypted=True, sink=sink)
        assert all(cred.encrypted for cred in result)

    def test_duplicates_kept(self, sink):
        """Duplicate entries are not removed."""
        result = parse_credentials("svc", "alice:a,alice:a", sink=sink)
        assert len(result) == 2

    def test_fail_soft_keeps_valid_entries(self, sink):
        """A malformed entry does not stop the rest of the list."""
        result = parse_credentials("svc", "alice:a,:broken,bob:b", sink=sink)
        assert [c.username for c in result] == ["alice", "bob"]
        assert len(sink.reports) == 1

    def test_reports_never_contain_password(self, sink):
        """Diagnostics do not leak password halves."""
        parse_credentials("svc", ":topsecret", sink=sink)
        assert len(sink.reports) == 1
        assert "topsecret" not in sink.reports[0][1]

    def test_default_sink_logs_warning(self, caplog):
        """Without a sink, reports go to the module logger."""
        with caplog.at_level(logging.WARNING, logger="flowproxy.credentials"):
            parse_credentials("checkout", "dave:")
        assert "checkout" in caplog.text


class TestLoggerSink:
    """Tests for LoggerSink."""

    def test_uses_given_logger(self, caplog):
        """Reports are written to the logger passed in."""
        log = logging.getLogger("custom.sink")
        with caplog.at_level(logging.WARNING, logger="custom.sink"):
            LoggerSink(log).report("web", "something wrong")
        assert caplog.records[0].name == "custom.sink"
        assert "For service web something wrong" in caplog.text


class TestPlaceholderCredential:
    """Tests for generate_placeholder_credential()."""

    def test_is_encrypted_placeholder(self):
        """Placeholder is flagged encrypted and uses the sentinel username."""
        cred = generate_placeholder_credential()
        assert cred.encrypted is True
        assert cred.username == PLACEHOLDER_USERNAME
        assert cred.is_placeholder

    def test_generated_flag_ignored_by_equality(self):
        """A placeholder compares equal to the same values built by hand."""
        cred = generate_placeholder_credential()
        assert cred == Credential(cred.username, cred.password, encrypted=True)

    def test_password_is_numeric(self):
        """Password is a non-empty base-3 number."""
        cred = generate_placeholder_credential()
        assert cred.has_password
        assert set(cred.password) <= {"0", "1", "2"}

    def test_passwords_differ(self):
        """Repeated calls give distinct passwords."""
        passwords = {generate_placeholder_credential().password for _ in range(20)}
        assert len(passwords) > 1
