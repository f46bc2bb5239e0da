# fixture_builder/naming.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence, Tuple

from fixture_builder.errors import DuplicateNameError, InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_RECORD_NAME_FIELDS: Tuple[str, ...] = (
    "unique_name",
    "display_name",
    "name",
    "title",
    "username",
    "login",
)

ROW_INDEX_START = "000"

NameCallback = Callable[[Mapping[str, Any], str], Any]


# ----------------------------
# Row index (lexical counter)
# ----------------------------

_DIGITS = "0123456789"
_LOWER = "abcdefghijklmnopqrstuvwxyz"
_UPPER = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_ALPHABETS = (_DIGITS, _LOWER, _UPPER)

def _alphabet_for(ch: str) -> Optional[str]:
    for alphabet in _ALPHABETS:
        if ch in alphabet:
            return alphabet
    return None

def successor(text: str) -> str:
    """
    String successor: bump the rightmost alphanumeric, carrying leftwards
    across alphanumerics only. "009" -> "010", "999" -> "1000", "az" -> "ba",
    "Zz" -> "AAa", "1.9" -> "2.0".
    """
    if not text:
        return ""

    chars = list(text)
    positions = [i for i, ch in enumerate(chars) if _alphabet_for(ch) is not None]

    if not positions:
        chars[-1] = chr(ord(chars[-1]) + 1)
        return "".join(chars)

    while positions:
        i = positions.pop()
        alphabet = _alphabet_for(chars[i])
        idx = alphabet.index(chars[i])
        if idx + 1 < len(alphabet):
            chars[i] = alphabet[idx + 1]
            return "".join(chars)
        chars[i] = alphabet[0]
        if not positions:
            # overflow of the leftmost alphanumeric grows the string
            chars.insert(i, alphabet[1] if alphabet is _DIGITS else alphabet[0])

    return "".join(chars)


class RowIndex:
    """
    Per-table counter handed to naming callbacks and used for fallback names.
    Kept as text so "000" grows to "1000" instead of wrapping.
    """

    def __init__(self, start: str = ROW_INDEX_START):
        self.value = start

    def succ(self) -> str:
        self.value = successor(self.value)
        return self.value

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"RowIndex({self.value!r})"


# ----------------------------
# Name inference
# ----------------------------

_ACRONYM_BOUNDARY_RE = re.compile(r"([A-Z\d]+)([A-Z][a-z])")
_CAMEL_BOUNDARY_RE = re.compile(r"([a-z\d])([A-Z])")
_NON_WORD_RE = re.compile(r"\W")
_SPACES_RE = re.compile(r" +")

def underscore(word: str) -> str:
    word = word.replace("::", "/")
    word = _ACRONYM_BOUNDARY_RE.sub(r"\1_\2", word)
    word = _CAMEL_BOUNDARY_RE.sub(r"\1_\2", word)
    word = word.replace("-", "_")
    return word.lower()

def name_from_value(value: Any) -> str:
    text = underscore(str(value))
    text = _NON_WORD_RE.sub(" ", text)
    text = _SPACES_RE.sub(" ", text)
    return text.replace(" ", "_")

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes)):
        return not value.strip()
    if isinstance(value, (Mapping, list, tuple, set)):
        return len(value) == 0
    return False

def row_identity(row: Any, primary_key: str = "id") -> Hashable:
    if isinstance(row, Mapping):
        value = row.get(primary_key)
    else:
        value = getattr(row, primary_key, None)
    try:
        return int(value)
    except (TypeError, ValueError):
        return value


# ----------------------------
# Registries
# ----------------------------

@dataclass
class NameRegistry:
    """
    Explicit names and per-table naming callbacks for one build session.
    """
    primary_key: str = "id"
    custom_names: Dict[Tuple[str, Hashable], str] = field(default_factory=dict)
    table_callbacks: Dict[str, NameCallback] = field(default_factory=dict)

    def name(self, custom_name: str, table_name: str, *rows: Any) -> Any:
        if _is_blank(custom_name):
            raise InvalidArgumentError("Cannot name an object blank")
        if _is_blank(table_name):
            raise InvalidArgumentError("Cannot name an object without a table")
        if not rows:
            raise InvalidArgumentError("Cannot name a blank object")

        keys: List[Tuple[str, Hashable]] = []
        for row in rows:
            if _is_blank(row):
                raise InvalidArgumentError("Cannot name a blank object")
            key = (table_name, row_identity(row, self.primary_key))
            if key in self.custom_names or key in keys:
                raise DuplicateNameError(f"Cannot set name for {key!r} object twice")
            keys.append(key)

        for key in keys:
            self.custom_names[key] = str(custom_name)
            logger.debug("Named %r as %r", key, custom_name)

        return rows[0] if len(rows) == 1 else rows

    def name_table_with(self, table_name: str, callback: NameCallback) -> None:
        if not callable(callback):
            raise InvalidArgumentError(f"Naming callback for {table_name!r} is not callable")
        self.table_callbacks[table_name] = callback

    def custom_name_for(self, table_name: str, row: Mapping[str, Any]) -> Optional[str]:
        return self.custom_names.get((table_name, row_identity(row, self.primary_key)))

    def callback_for(self, table_name: str) -> Optional[NameCallback]:
        return self.table_callbacks.get(table_name)


# ----------------------------
# Namer
# ----------------------------

@dataclass
class RecordNamer:
    registry: NameRegistry
    record_name_fields: Sequence[str] = DEFAULT_RECORD_NAME_FIELDS

    def assign_name(
        self,
        row: Mapping[str, Any],
        table_name: str,
        ledger: List[str],
        counter: RowIndex,
    ) -> str:
        custom = self.registry.custom_name_for(table_name, row)
        callback = self.registry.callback_for(table_name)

        if custom is not None:
            name = custom
        elif callback is not None:
            name = str(callback(row, counter.succ()))
        else:
            name = self.inferred_name(row, table_name, ledger, counter)

        ledger.append(name)
        return name

    def inferred_name(
        self,
        row: Mapping[str, Any],
        table_name: str,
        ledger: List[str],
        counter: RowIndex,
    ) -> str:
        for field_name in self.record_name_fields:
            value = row.get(field_name)
            if _is_blank(value):
                continue
            base = name_from_value(value)
            # prefix match: "al" also counts "alice"
            count = sum(1 for taken in ledger if taken.startswith(base))
            return base if count == 0 else f"{base}_{count}"

        return f"{table_name}_{counter.succ()}"
