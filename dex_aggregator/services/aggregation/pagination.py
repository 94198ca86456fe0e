"""
Cursor Pagination Engine

Slices the ordered token sequence into pages. The continuation token is
base64 of UTF-8 JSON: {"identity": str, "sort_value": number, "offset": int}.

A cursor resumes right after the token it names. When that token has
dropped out of the sequence, the stored offset is used instead. A cursor
that cannot be decoded is ignored and the first page is served.
"""

import base64
import binascii
import json
import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from dex_aggregator.schemas.token import CursorPayload, Token, TokenPage, TokenQuery
from dex_aggregator.services.aggregation.pipeline import sort_value

logger = logging.getLogger(__name__)

# Issued cursors stay well under this; anything longer is not one of ours
MAX_CURSOR_LENGTH = 1024


def encode_cursor(payload: CursorPayload) -> str:
    raw = json.dumps(payload.model_dump(), separators=(",", ":"))
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> Optional[CursorPayload]:
    """Decode a cursor, returning None for anything that is not a valid one."""
    if not cursor:
        return None
    if len(cursor) > MAX_CURSOR_LENGTH:
        logger.debug(f"Ignoring oversized cursor ({len(cursor)} chars)")
        return None
    try:
        raw = base64.b64decode(cursor, validate=True).decode("utf-8")
        return CursorPayload.model_validate(json.loads(raw))
    except (
        binascii.Error,
        UnicodeError,
        ValueError,
        TypeError,
        RecursionError,
        ValidationError,
    ) as e:
        logger.debug(f"Ignoring invalid cursor {cursor[:32]!r}: {e}")
        return None


def resolve_start(tokens: Sequence[Token], cursor: Optional[CursorPayload]) -> int:
    """Absolute index of the first token on the requested page."""
    if cursor is None:
        return 0
    for index, token in enumerate(tokens):
        if token.token_address == cursor.identity:
            return index + 1
    # The cursor's token moved out of the sequence since it was issued
    return cursor.offset


def page_size(limit: Optional[int], default_limit: int, max_limit: int) -> int:
    return max(1, min(limit or default_limit, max_limit))


def paginate(
    tokens: Sequence[Token],
    query: TokenQuery,
    default_limit: int,
    max_limit: int,
) -> TokenPage:
    """Return the page of `tokens` selected by the query's cursor and limit."""
    size = page_size(query.limit, default_limit, max_limit)
    start = resolve_start(tokens, decode_cursor(query.cursor))
    end = start + size

    page = list(tokens[start:end])
    has_next = end < len(tokens)

    next_cursor = None
    if has_next and page:
        last = page[-1]
        next_cursor = encode_cursor(
            CursorPayload(
                identity=last.token_address,
                sort_value=sort_value(last, query.sort_by, query.timeframe),
                offset=end,
            )
        )

    return TokenPage(
        tokens=page,
        total=len(tokens),
        has_next=has_next,
        next_cursor=next_cursor,
    )
