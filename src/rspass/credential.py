"""
Credential plaintext payload: the text that gets sealed.

Wire format (before encryption):

    <secret>
    <key>=<value>
    <key>=<value>
    ...

A backslash escapes the characters that would otherwise break the
framing: ``\\\\`` for a backslash, ``\\n`` and ``\\r`` for line breaks,
and ``\\=`` for an equals sign inside a key. Values may contain a bare
``=``; only the first unescaped ``=`` on a line separates key from
value. Plain text without any of these characters is stored verbatim,
so payloads written without escaping still parse.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Optional, Union

from pydantic import BaseModel, Field

MetadataInput = Union[Mapping[str, str], Iterable[tuple[str, str]], None]
MetadataChanges = Union[
    Mapping[str, Optional[str]], Iterable[tuple[str, Optional[str]]], None
]

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "=": "="}


def escape(text: str, *, key: bool = False) -> str:
    """Escape a field for the line-oriented payload."""
    out = []
    for ch in text:
        if ch in _ESCAPES:
            out.append(_ESCAPES[ch])
        elif key and ch == "=":
            out.append("\\=")
        else:
            out.append(ch)
    return "".join(out)


def unescape(text: str) -> str:
    """Reverse ``escape``. Unknown escapes keep their backslash."""
    out = []
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "\\" and i + 1 < len(text) and text[i + 1] in _UNESCAPES:
            out.append(_UNESCAPES[text[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def _split_pair(line: str) -> Optional[tuple[str, str]]:
    """Split a metadata line at its first unescaped ``=``."""
    i = 0
    while i < len(line):
        if line[i] == "\\":
            i += 2
            continue
        if line[i] == "=":
            return unescape(line[:i]), unescape(line[i + 1:])
        i += 1
    return None


def pairs(items: Union[Mapping, Iterable, None]) -> list[tuple]:
    """Normalize a mapping or an iterable of pairs into a list of pairs."""
    if items is None:
        return []
    if isinstance(items, Mapping):
        return list(items.items())
    return [tuple(item) for item in items]


class Credential(BaseModel):
    """Decrypted credential content.

    Attributes:
        secret: The secret itself, always the first payload line.
        metadata: Ordered key/value pairs stored after the secret.
    """

    secret: str
    metadata: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: str) -> Credential:
        """Parse a decrypted payload.

        Lines without an unescaped ``=`` are ignored. A key that appears
        more than once keeps its last value and its first position.
        """
        lines = payload.split("\n")
        metadata: dict[str, str] = {}
        for line in lines[1:]:
            pair = _split_pair(line.rstrip("\r"))
            if pair is None:
                continue
            key, value = pair
            metadata[key] = value
        return cls(secret=unescape(lines[0].rstrip("\r")), metadata=metadata)

    def to_payload(self) -> str:
        lines = [escape(self.secret)]
        for key, value in self.metadata.items():
            lines.append(f"{escape(key, key=True)}={escape(value)}")
        return "\n".join(lines)

    def apply(self, secret: Optional[str] = None, changes: MetadataChanges = None) -> Credential:
        """Return a copy with a new secret and/or metadata changes applied.

        A change with a value sets or overwrites the key in place (new keys
        go last); a change with ``None`` deletes the key.
        """
        metadata = dict(self.metadata)
        for key, value in pairs(changes):
            if value is None:
                metadata.pop(key, None)
            else:
                metadata[key] = value
        return Credential(
            secret=self.secret if secret is None else secret,
            metadata=metadata,
        )
