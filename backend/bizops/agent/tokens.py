"""
Pagination tokens for inline-keyboard buttons.

Wire format::

    pg:{kind}:{page}
    pg:{kind}:{page}:{key}:{value}

`value` is percent-encoded with nothing left safe, so it never contains the
`:` delimiter. Telegram caps callback data at CALLBACK_DATA_LIMIT bytes;
when the encoded value would push a token over that limit the value is kept
in a small in-process table and the token carries `*<ref>` instead.
`quote()` always escapes `*`, so a leading `*` can't be mistaken for real
text.

Decoding never raises. A missing or garbled page reads as 0; clamping the
page to the list's range is the renderer's job.
"""
import hashlib
import logging
import re
import threading
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import quote, unquote

from bizops.core.config import settings

logger = logging.getLogger(__name__)

PAGE_PREFIX = "pg"
DELIMITER = ":"
REF_MARK = "*"
REF_LENGTH = 12

_LEADING_INT = re.compile(r"^\s*(\d+)")


class ListKind(str, Enum):
    CLIENTS_VIEW = "cv"
    CLIENTS_EDIT = "ce"
    CLIENTS_SELECT = "cs"
    CLIENTS_QUICK = "cq"
    SALES_CLIENTS = "sc"
    PRODUCTS = "pr"
    ORDERS_BY_DATE = "od"
    ORDERS_BY_CLIENT = "oc"
    ORDERS_RECENT = "or"
    SEARCH_OPTIONS = "so"
    SEARCH_BY_FILTER = "sf"
    SEARCH_BY_TEXT = "st"
    NEW_CLIENT_OPTIONS = "no"
    EDIT_CLIENT_OPTIONS = "eo"
    INVENTORY = "iv"


@dataclass(frozen=True)
class PageRequest:
    kind: ListKind
    page: int = 0
    key: Optional[str] = None
    value: Optional[str] = None

    def at(self, page: int) -> "PageRequest":
        return PageRequest(self.kind, page, self.key, self.value)


def parse_page(raw: Optional[str]) -> int:
    match = _LEADING_INT.match(raw or "")
    return int(match.group(1)) if match else 0


class PageTokenCodec:
    """Encode/decode page tokens, spilling oversized values into a lookup table."""

    def __init__(self, limit: int | None = None, max_refs: int = 4096):
        self.limit = limit or settings.CALLBACK_DATA_LIMIT
        self.max_refs = max_refs
        self._refs: OrderedDict[str, str] = OrderedDict()
        self._lock = threading.Lock()

    def fits(self, token: str) -> bool:
        return len(token.encode("utf-8")) <= self.limit

    def with_value(self, prefix: str, value: str) -> str:
        """`{prefix}:{value}` with the value encoded, or by reference if too long."""
        token = f"{prefix}{DELIMITER}{quote(value, safe='')}"
        if self.fits(token):
            return token
        ref = self._remember(value)
        token = f"{prefix}{DELIMITER}{REF_MARK}{ref}"
        if not self.fits(token):
            logger.warning(f"[Tokens] Token still over {self.limit} bytes: {token!r}")
        return token

    def unpack(self, segment: Optional[str]) -> Optional[str]:
        """Inverse of the value part of `with_value`. Unknown refs read as None."""
        if segment is None:
            return None
        if segment.startswith(REF_MARK):
            with self._lock:
                value = self._refs.get(segment[len(REF_MARK):])
                if value is not None:
                    self._refs.move_to_end(segment[len(REF_MARK):])
            if value is None:
                logger.info(f"[Tokens] Unknown value reference {segment!r}")
            return value
        return unquote(segment)

    def _remember(self, value: str) -> str:
        ref = hashlib.sha1(value.encode("utf-8")).hexdigest()[:REF_LENGTH]
        with self._lock:
            self._refs[ref] = value
            self._refs.move_to_end(ref)
            while len(self._refs) > self.max_refs:
                self._refs.popitem(last=False)
        return ref

    def encode(self, kind: ListKind, page: int = 0, key: str | None = None, value: str | None = None) -> str:
        kind = ListKind(kind)
        page = max(int(page or 0), 0)
        prefix = DELIMITER.join((PAGE_PREFIX, kind.value, str(page)))
        if key is None:
            return prefix
        return self.with_value(f"{prefix}{DELIMITER}{key}", "" if value is None else str(value))

    def encode_request(self, request: PageRequest) -> str:
        return self.encode(request.kind, request.page, request.key, request.value)

    def decode(self, token: str) -> Optional[PageRequest]:
        """None when the token isn't a page token or names an unknown list."""
        parts = (token or "").split(DELIMITER, 4)
        if parts[0] != PAGE_PREFIX or len(parts) < 2:
            return None
        try:
            kind = ListKind(parts[1])
        except ValueError:
            return None
        page = parse_page(parts[2] if len(parts) > 2 else None)
        key = (parts[3] or None) if len(parts) > 3 else None
        value = self.unpack(parts[4]) if len(parts) > 4 else None
        return PageRequest(kind=kind, page=page, key=key, value=value)
