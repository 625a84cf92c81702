"""Tests for HTTP-style content sniffing."""

import pytest

from apihub.core.lifting.sniffing import OCTET_STREAM, TEXT_PLAIN_UTF8, detect_content_type


class TestDetectContentType:
    """Media types from leading bytes."""

    @pytest.mark.parametrize(
        ("data", "expected"),
        [
            (b"", TEXT_PLAIN_UTF8),
            (b"openapi: 3.0.0\ninfo: {}\n", TEXT_PLAIN_UTF8),
            (b'{"openapi": "3.1.0"}', TEXT_PLAIN_UTF8),
            (b"syntax = \"proto3\";\n", TEXT_PLAIN_UTF8),
            (b"\xef\xbb\xbfopenapi: 3.0.0", TEXT_PLAIN_UTF8),
            (b"\xff\xfeo\x00", "text/plain; charset=utf-16le"),
            (b"\n  <html><body></body></html>", "text/html; charset=utf-8"),
            (b"<!doctype html>\n<html>", "text/html; charset=utf-8"),
            (b"<a href='x'>link</a>", "text/html; charset=utf-8"),
            (b"<?xml version='1.0'?><wsdl/>", "text/xml; charset=utf-8"),
            (b"%PDF-1.7\n", "application/pdf"),
            (b"\x89PNG\r\n\x1a\n\x00\x00", "image/png"),
            (b"GIF89a\x01\x00", "image/gif"),
            (b"PK\x03\x04\x14\x00", "application/zip"),
            (b"\x1f\x8b\x08\x00", "application/x-gzip"),
            (b"RIFF\x00\x00\x00\x00WAVEfmt ", "audio/wave"),
            (b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom", "video/mp4"),
            (b"\x00\x01\x02\x03binary", OCTET_STREAM),
        ],
    )
    def test_signatures(self, data, expected):
        assert detect_content_type(data) == expected

    def test_tag_needs_terminator(self):
        """A tag prefix followed by a name character is not HTML."""
        assert detect_content_type(b"<abbr>") == TEXT_PLAIN_UTF8

    def test_only_leading_bytes_inspected(self):
        """Binary bytes after the sniff window don't change the answer."""
        assert detect_content_type(b"a" * 600 + b"\x00") == TEXT_PLAIN_UTF8
        assert detect_content_type(b"a" * 100 + b"\x00") == OCTET_STREAM
