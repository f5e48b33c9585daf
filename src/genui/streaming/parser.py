"""Incremental JSON record parser for streamed model output."""

from dataclasses import dataclass
from typing import Any

from ..core import (
    JSONParseError,
    decode_json,
    get_logger,
    get_settings,
    validate_json_depth,
    validate_json_size,
)
from ..data import parse_path

logger = get_logger(__name__)

_WHITESPACE = " \t\r\n"
_SCALAR_END = _WHITESPACE + ",}]"
_PATCH_OPS = ("add", "replace", "set")


@dataclass
class _Frame:
    """An open object or array."""

    kind: str  # "{" or "["
    start: int  # absolute offset of the opening bracket
    parent_key: str | int | None
    key: str | None = None  # last key read (objects)
    expect_key: bool = True  # next string is a key (objects)
    index: int = 0  # position of the next item (arrays)
    tree: bool = False  # top-level object shaped {"root": ..., "elements": ...}


class RecordParser:
    """
    Turns a growing text stream into complete element records.

    Three layouts are recognised:
    - JSON Lines, one record (or patch operation) per object
    - a top-level array of records
    - a tree object {"root": "<key>", "elements": {<key>: <element>, ...}}

    Only records whose closing bracket has arrived are emitted; anything
    still open stays buffered until a later chunk completes it. Text outside
    any JSON value (markdown fences, prose) is skipped.
    """

    def __init__(self, max_buffer: int | None = None, max_depth: int | None = None) -> None:
        settings = get_settings()
        self.max_buffer = max_buffer or settings.max_stream_buffer
        self.max_depth = max_depth or settings.max_json_depth
        self.reset()

    def reset(self) -> None:
        """Forget all buffered text and state."""
        self._text = ""
        self._offset = 0  # absolute offset of self._text[0]
        self._pos = 0  # absolute offset of the next character to scan
        self._stack: list[_Frame] = []
        self._string_start: int | None = None
        self._escape = False
        self._scalar_start: int | None = None
        self.root: str | None = None
        self.emitted = 0
        self._overflow: JSONParseError | None = None

    @property
    def deferred(self) -> bool:
        """True while a value is open and waiting for more data."""
        return bool(self._stack) or self._string_start is not None

    @property
    def buffered(self) -> str:
        """Text kept because a record may still need it."""
        return self._text

    def feed(self, chunk: str) -> list[dict[str, Any]]:
        """
        Consume a chunk and return the records it completed.

        When the chunk completes records and also leaves the buffer past
        max_buffer, the records are returned and the overflow is raised by
        the next feed() or close().

        Raises:
            JSONParseError: If the undecoded buffer grows past max_buffer
        """
        self._raise_overflow()
        self._text += chunk
        records: list[dict[str, Any]] = []
        end = self._offset + len(self._text)
        while self._pos < end:
            self._step(self._text[self._pos - self._offset], records)
            self._pos += 1
        self._trim()
        self.emitted += len(records)
        try:
            validate_json_size(self._text, self.max_buffer, "Stream buffer")
        except JSONParseError as e:
            if not records:
                raise
            logger.warning("stream_buffer_overflow_deferred", records=len(records))
            self._overflow = e
        return records

    def close(self) -> str:
        """
        End of stream: return undecoded trailing text (empty when clean).

        Raises:
            JSONParseError: If the last feed() overflowed the buffer
        """
        self._raise_overflow()
        trailing = self._text.strip() if self.deferred or self._scalar_start is not None else ""
        if trailing:
            logger.warning("stream_trailing_data", size=len(trailing))
        return trailing

    def _raise_overflow(self) -> None:
        if self._overflow is not None:
            error, self._overflow = self._overflow, None
            raise error

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------

    def _step(self, ch: str, records: list[dict[str, Any]]) -> None:
        if self._string_start is not None:
            if self._escape:
                self._escape = False
            elif ch == "\\":
                self._escape = True
            elif ch == '"':
                start, self._string_start = self._string_start, None
                self._on_string(start, self._pos + 1, records)
            return

        if self._scalar_start is not None:
            if ch not in _SCALAR_END:
                return
            start, self._scalar_start = self._scalar_start, None
            self._on_value(start, self._pos, records)

        if ch in _WHITESPACE:
            return

        if not self._stack:
            # Outside any value: only an opening bracket matters
            if ch in "{[":
                self._push(ch)
            return

        top = self._stack[-1]
        if ch in "{[":
            self._push(ch)
        elif ch in "}]":
            self._pop(ch, records)
        elif ch == '"':
            self._string_start = self._pos
        elif ch == ":":
            top.expect_key = False
        elif ch == ",":
            if top.kind == "{":
                top.expect_key = True
            else:
                top.index += 1
        else:
            self._scalar_start = self._pos

    def _push(self, ch: str) -> None:
        parent = self._stack[-1] if self._stack else None
        parent_key: str | int | None = None
        if parent is not None:
            parent_key = parent.key if parent.kind == "{" else parent.index
            if len(self._stack) == 1 and parent.kind == "{" and parent_key == "elements":
                parent.tree = True
        self._stack.append(_Frame(kind=ch, start=self._pos, parent_key=parent_key))

    def _pop(self, ch: str, records: list[dict[str, Any]]) -> None:
        frame = self._stack[-1]
        if (frame.kind == "{") != (ch == "}"):
            logger.warning("stream_resync", offset=self._pos)
            self._stack.clear()
            return
        self._stack.pop()
        self._on_value(frame.start, self._pos + 1, records, frame)

    def _on_string(self, start: int, end: int, records: list[dict[str, Any]]) -> None:
        top = self._stack[-1]
        if top.kind == "{" and top.expect_key:
            key = self._decode(start, end)
            top.key = key if isinstance(key, str) else None
            return
        self._on_value(start, end, records)

    def _on_value(
        self, start: int, end: int, records: list[dict[str, Any]], frame: _Frame | None = None
    ) -> None:
        depth = len(self._stack)
        is_object = frame is not None and frame.kind == "{"

        if depth == 0:
            if is_object and not frame.tree:
                self._emit(start, end, None, records)
        elif depth == 1:
            parent = self._stack[0]
            if parent.kind == "[" and is_object:
                self._emit(start, end, None, records)
            elif parent.kind == "{" and parent.key == "root" and frame is None:
                parent.tree = True
                root = self._decode(start, end)
                if isinstance(root, str) and root:
                    self.root = root
        elif depth == 2:
            outer, container = self._stack
            if outer.tree and container.parent_key == "elements" and is_object:
                default_key = frame.parent_key if container.kind == "{" else None
                self._emit(start, end, default_key, records)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def _slice(self, start: int, end: int) -> str:
        return self._text[start - self._offset : end - self._offset]

    def _decode(self, start: int, end: int) -> Any:
        try:
            return decode_json(self._slice(start, end))
        except JSONParseError:
            return None

    def _emit(self, start: int, end: int, default_key: Any, records: list[dict[str, Any]]) -> None:
        try:
            value = decode_json(self._slice(start, end))
            validate_json_depth(value, self.max_depth)
        except JSONParseError as e:
            logger.warning("record_skipped", error=str(e))
            return
        if not isinstance(value, dict):
            return

        if "op" in value and "path" in value:
            record = self._from_patch(value)
            if record is not None:
                records.append(record)
            return

        if isinstance(default_key, str) and "key" not in value:
            value["key"] = default_key
        records.append(value)

    def _from_patch(self, patch: dict[str, Any]) -> dict[str, Any] | None:
        """Translate a JSON-patch style operation into a partial record."""
        if patch.get("op") not in _PATCH_OPS or not isinstance(patch.get("path"), str):
            logger.debug("patch_ignored", op=patch.get("op"))
            return None
        path = parse_path(patch["path"])
        value = patch.get("value")

        if path == ("root",):
            if isinstance(value, str) and value:
                self.root = value
            return None
        if len(path) < 2 or path[0] != "elements":
            logger.debug("patch_ignored", path=patch["path"])
            return None

        key = path[1]
        if len(path) == 2 and isinstance(value, dict):
            return {**value, "key": key}
        if len(path) == 3 and path[2] in ("type", "props", "children", "visible"):
            return {"key": key, path[2]: value}
        if len(path) == 4 and path[2] == "props":
            return {"key": key, "props": {path[3]: value}}
        logger.debug("patch_ignored", path=patch["path"])
        return None

    def _trim(self) -> None:
        """Drop text no pending record can still need."""
        keep = self._pos
        if self._string_start is not None:
            keep = min(keep, self._string_start)
        if self._scalar_start is not None:
            keep = min(keep, self._scalar_start)

        stack = self._stack
        if stack and stack[0].kind == "{" and not stack[0].tree:
            keep = min(keep, stack[0].start)
        if len(stack) > 1 and stack[0].kind == "[" and stack[1].kind == "{":
            keep = min(keep, stack[1].start)
        if len(stack) > 2 and stack[0].tree and stack[1].parent_key == "elements":
            keep = min(keep, stack[2].start)

        if keep > self._offset:
            self._text = self._text[keep - self._offset :]
            self._offset = keep
