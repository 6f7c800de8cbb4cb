"""Tests for embedding-text derivation and device labels."""

from __future__ import annotations

import unittest
from unittest.mock import patch

from marksync.core.device import device_label
from marksync.core.text_utils import (
    EMBEDDING_TEXT_MAX_LENGTH,
    detect_text_type,
    embedding_text_for,
    make_embedding_text,
    smart_truncate,
)
from tests.conftest import make_bookmark


class TestDetectTextType(unittest.TestCase):
    def test_scripts(self):
        assert detect_text_type("hello world") == "latin"
        assert detect_text_type("привет мир") == "cyrillic"
        assert detect_text_type("你好世界，欢迎") == "cjk"
        assert detect_text_type("hello 你好 привет") == "mixed"
        assert detect_text_type("!!! ...") == "mixed"


class TestSmartTruncate(unittest.TestCase):
    def test_short_text_unchanged(self):
        assert smart_truncate("short", 10) == "short"

    def test_latin_text_keeps_whole_words(self):
        text = " ".join(f"word{i}" for i in range(20))
        assert smart_truncate(text, 20) == " ".join(f"word{i}" for i in range(10))

    def test_cjk_cuts_after_punctuation(self):
        text = "一二三四五，六七八九十" * 3
        assert smart_truncate(text, 12) == "一二三四五，"

    def test_mixed_text_cuts_at_whitespace(self):
        text = "abc 你好世界 def 再见朋友 ghi"
        assert detect_text_type(text) == "mixed"
        assert smart_truncate(text, 15) == "abc 你好世界 def"


class TestMakeEmbeddingText(unittest.TestCase):
    def test_all_parts(self):
        text = make_embedding_text("Title", ["a", "b"], "An  excerpt\nhere")
        assert text == "title: Title;tags: a,b;excerpt: An excerpt here;"

    def test_missing_parts_are_omitted(self):
        assert make_embedding_text(None, [], None) == ""
        assert make_embedding_text("T", None, "") == "title: T;"

    def test_long_text_is_capped(self):
        text = make_embedding_text("x " * 5000, [], None)
        assert len(text) <= EMBEDDING_TEXT_MAX_LENGTH

    def test_record_helper_ignores_non_text_fields(self):
        first = make_bookmark("https://x/1", "T", tags=["a"], useCount=1)
        second = make_bookmark("https://x/1", "T", tags=["a"], useCount=9)
        assert embedding_text_for(first) == embedding_text_for(second)
        assert embedding_text_for(None) == ""


class TestDeviceLabel(unittest.TestCase):
    def test_configured_name_wins(self):
        assert device_label("  laptop ") == "laptop"

    def test_default_label_uses_os_and_host(self):
        with (
            patch("marksync.core.device.platform.system", return_value="Darwin"),
            patch("marksync.core.device.socket.gethostname", return_value="mbp"),
        ):
            assert device_label(None) == "Mac OS (mbp)"


if __name__ == "__main__":
    unittest.main()
