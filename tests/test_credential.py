"""Tests for the credential payload format."""

from __future__ import annotations

from rspass.credential import Credential, escape, pairs, unescape


class TestPayloadFormat:
    """Secret on the first line, metadata as key=value lines."""

    def test_secret_only(self):
        cred = Credential(secret="p@ss1")
        assert cred.to_payload() == "p@ss1"
        assert Credential.from_payload("p@ss1") == cred

    def test_metadata_lines(self):
        cred = Credential(secret="p@ss1", metadata={"user": "alice", "url": "github.com"})
        assert cred.to_payload() == "p@ss1\nuser=alice\nurl=github.com"

    def test_parse_keeps_order(self):
        cred = Credential.from_payload("s\nb=2\na=1\nc=3")
        assert list(cred.metadata) == ["b", "a", "c"]

    def test_first_line_never_metadata(self):
        cred = Credential.from_payload("key=value\nuser=alice")
        assert cred.secret == "key=value"
        assert cred.metadata == {"user": "alice"}

    def test_value_may_contain_equals(self):
        cred = Credential.from_payload("s\ntoken=abc==")
        assert cred.metadata == {"token": "abc=="}

    def test_lines_without_equals_ignored(self):
        cred = Credential.from_payload("s\njust a note\nuser=alice\n")
        assert cred.metadata == {"user": "alice"}

    def test_duplicate_key_last_value_wins(self):
        cred = Credential.from_payload("s\nuser=alice\nurl=x\nuser=bob")
        assert cred.metadata == {"user": "bob", "url": "x"}
        assert list(cred.metadata) == ["user", "url"]

    def test_crlf_tolerated(self):
        cred = Credential.from_payload("secret\r\nuser=alice\r\n")
        assert cred.secret == "secret"
        assert cred.metadata == {"user": "alice"}

    def test_empty_value(self):
        cred = Credential.from_payload("s\nnote=")
        assert cred.metadata == {"note": ""}


class TestEscaping:
    """Characters that would break the line framing survive a round trip."""

    def test_plain_text_unchanged(self):
        assert escape("hunter2") == "hunter2"
        assert unescape("hunter2") == "hunter2"

    def test_newline_in_secret(self):
        cred = Credential(secret="line1\nline2", metadata={"user": "alice"})
        payload = cred.to_payload()
        assert payload.count("\n") == 1
        assert Credential.from_payload(payload) == cred

    def test_equals_in_key(self):
        cred = Credential(secret="s", metadata={"a=b": "c=d"})
        assert cred.to_payload() == "s\na\\=b=c=d"
        assert Credential.from_payload(cred.to_payload()) == cred

    def test_backslashes(self):
        cred = Credential(secret="C:\\path\\n", metadata={"k\\": "v\\"})
        assert Credential.from_payload(cred.to_payload()) == cred

    def test_unknown_escape_kept(self):
        assert unescape("a\\tb") == "a\\tb"

    def test_trailing_backslash_kept(self):
        assert unescape("abc\\") == "abc\\"


class TestApply:
    """Edits keep positions, append new keys and delete on None."""

    def test_replace_secret_keeps_metadata(self):
        cred = Credential(secret="old", metadata={"user": "alice"})
        updated = cred.apply(secret="new")
        assert updated.secret == "new"
        assert updated.metadata == {"user": "alice"}
        assert cred.secret == "old"

    def test_update_in_place_and_append(self):
        cred = Credential(secret="s", metadata={"a": "1", "b": "2"})
        updated = cred.apply(changes=[("a", "9"), ("c", "3")])
        assert list(updated.metadata.items()) == [("a", "9"), ("b", "2"), ("c", "3")]

    def test_delete_key(self):
        cred = Credential(secret="s", metadata={"a": "1", "b": "2"})
        updated = cred.apply(changes={"a": None})
        assert updated.metadata == {"b": "2"}

    def test_delete_missing_key_is_noop(self):
        cred = Credential(secret="s", metadata={"a": "1"})
        assert cred.apply(changes={"zzz": None}) == cred


class TestPairs:
    def test_mapping(self):
        assert pairs({"a": "1"}) == [("a", "1")]

    def test_iterable(self):
        assert pairs([["a", "1"], ("b", "2")]) == [("a", "1"), ("b", "2")]

    def test_none(self):
        assert pairs(None) == []
