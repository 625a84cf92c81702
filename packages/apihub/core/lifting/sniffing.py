"""HTTP-style content sniffing.

Implements the WHATWG MIME sniffing subset used by HTTP servers to label
uploaded payloads: at most the first 512 bytes are inspected and the result
is always a valid media type, ``application/octet-stream`` when nothing
matches. Labels are stable so they can take part in content checksums.
"""

from __future__ import annotations

from collections.abc import Callable

SNIFF_LEN = 512

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN_UTF8 = "text/plain; charset=utf-8"

# Leading bytes the WHATWG algorithm treats as whitespace.
_WHITESPACE = b"\t\n\x0c\r "

_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

# (prefix, media type) matched against the raw bytes.
_EXACT_SIGNATURES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", TEXT_PLAIN_UTF8),
    (b"\x00\x00\x01\x00", "image/x-icon"),
    (b"\x00\x00\x02\x00", "image/x-icon"),
    (b"BM", "image/bmp"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b".snd", "audio/basic"),
    (b"OggS\x00", "application/ogg"),
    (b"MThd\x00\x00\x00\x06", "audio/midi"),
    (b"ID3", "audio/mpeg"),
    (b"\x1a\x45\xdf\xa3", "video/webm"),
    (b"\x00\x01\x00\x00", "font/ttf"),
    (b"OTTO", "font/otf"),
    (b"ttcf", "font/collection"),
    (b"wOFF", "font/woff"),
    (b"wOF2", "font/woff2"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
    (b"PK\x03\x04", "application/zip"),
    (b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    (b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),
    (b"\x00asm", "application/wasm"),
)

# (offset, form type, media type) for RIFF containers.
_RIFF_SIGNATURES = (
    (8, b"WEBPVP", "image/webp"),
    (8, b"WAVE", "audio/wave"),
    (8, b"AVI ", "video/avi"),
)

# Bytes that mark content as binary when sniffing for text.
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _skip_whitespace(data: bytes) -> bytes:
    return data.lstrip(_WHITESPACE)


def _match_html(data: bytes) -> str | None:
    data = _skip_whitespace(data)
    upper = data[:16].upper()
    for tag in _HTML_TAGS:
        if not upper.startswith(tag):
            continue
        if len(data) <= len(tag):
            continue
        # A tag must be followed by a tag-terminating byte.
        if data[len(tag)] in b" >":
            return "text/html; charset=utf-8"
    return None


def _match_xml(data: bytes) -> str | None:
    if _skip_whitespace(data).startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    return None


def _match_exact(data: bytes) -> str | None:
    for prefix, media_type in _EXACT_SIGNATURES:
        if data.startswith(prefix):
            return media_type
    return None


def _match_riff(data: bytes) -> str | None:
    if not data.startswith(b"RIFF"):
        return None
    for offset, tag, media_type in _RIFF_SIGNATURES:
        if data[offset : offset + len(tag)] == tag:
            return media_type
    return None


def _match_mp4(data: bytes) -> str | None:
    if len(data) < 12:
        return None
    box_size = int.from_bytes(data[:4], "big")
    if box_size % 4 != 0 or len(data) < box_size or data[4:8] != b"ftyp":
        return None
    for start in range(8, box_size, 4):
        if start == 12:
            # Bytes 12..15 hold the minor version.
            continue
        if data[start : start + 3] == b"mp4":
            return "video/mp4"
    return None


def _match_text(data: bytes) -> str | None:
    if any(b in _BINARY_BYTES for b in data):
        return None
    return TEXT_PLAIN_UTF8


_MATCHERS: tuple[Callable[[bytes], str | None], ...] = (
    _match_html,
    _match_xml,
    _match_exact,
    _match_riff,
    _match_mp4,
    _match_text,
)


def detect_content_type(data: bytes) -> str:
    """Media type of ``data`` from its leading bytes.

    Args:
        data: Payload, only the first 512 bytes are considered

    Returns:
        Media type, possibly with a charset parameter

    Example:
        >>> detect_content_type(b"openapi: 3.0.0")
        'text/plain; charset=utf-8'
        >>> detect_content_type(b"PK\\x03\\x04...")
        'application/zip'
    """
    head = data[:SNIFF_LEN]
    for matcher in _MATCHERS:
        media_type = matcher(head)
        if media_type is not None:
            return media_type
    return OCTET_STREAM
