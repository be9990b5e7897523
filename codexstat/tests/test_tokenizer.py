"""Tests for the word-cloud tokenizer."""

import unittest

from codexstat.etl.tokenizer import cjk_tokens, latin_tokens, strip_noise, tokenize


class TestNoiseStripping(unittest.TestCase):
    """Test removal of code, URLs and hashes."""

    def test_mixed_text(self):
        """Code spans and URLs leave no tokens; CJK runs yield n-grams."""
        counts = tokenize("Run `ls -la` at https://x.test and 你好世界")

        self.assertNotIn("ls", counts)
        self.assertNotIn("la", counts)
        self.assertNotIn("test", counts)
        self.assertNotIn("x", counts)
        self.assertEqual(counts["run"], 1)
        for gram in ("你好", "好世", "世界", "你好世", "好世界", "你好世界"):
            self.assertEqual(counts[gram], 1, gram)

    def test_fenced_code_removed(self):
        counts = tokenize("setup\n```python\nimport os\nprint(os.getcwd())\n```\nteardown")
        self.assertEqual(set(counts), {"setup", "teardown"})

    def test_long_hex_hash_removed(self):
        digest = "a" * 8 + "0123456789abcdef" * 2
        counts = tokenize(f"commit {digest} broke parsing")
        self.assertNotIn(digest, counts)
        self.assertIn("commit", counts)
        self.assertIn("parsing", counts)

    def test_short_hex_kept(self):
        """Hex-looking words below 32 characters are ordinary words."""
        counts = tokenize("deadbeef deadbeef")
        self.assertEqual(counts["deadbeef"], 2)

    def test_www_url_removed(self):
        self.assertNotIn("example", tokenize("see www.example.com/docs"))

    def test_strip_noise_keeps_prose(self):
        self.assertIn("hello", strip_noise("hello `code` world"))


class TestLatinPass(unittest.TestCase):
    """Test Latin-alphabet word extraction."""

    def test_lowercased(self):
        self.assertEqual(tokenize("Parser PARSER parser"), {"parser": 3})

    def test_stopwords_removed(self):
        self.assertEqual(tokenize("the parser and the lexer"), {"parser": 1, "lexer": 1})

    def test_length_bounds(self):
        words = list(latin_tokens("x ab " + "q" * 30 + " " + "z" * 31))
        self.assertIn("ab", words)
        self.assertIn("q" * 30, words)
        self.assertNotIn("x", words)
        self.assertFalse(any(w.startswith("z") for w in words))

    def test_must_start_with_letter(self):
        words = list(latin_tokens("3d 42abc abc-def snake_case"))
        self.assertNotIn("3d", words)
        self.assertNotIn("42abc", words)
        self.assertNotIn("abc", words)
        self.assertIn("abc-def", words)
        self.assertIn("snake_case", words)

    def test_empty_text(self):
        self.assertEqual(tokenize(""), {})


class TestCjkPass(unittest.TestCase):
    """Test CJK n-gram extraction."""

    def test_two_char_run_whole_and_bigram(self):
        """A two-character run counts once whole and once as its bigram."""
        self.assertEqual(list(cjk_tokens("测试")), ["测试", "测试"])
        self.assertEqual(tokenize("测试"), {"测试": 2})

    def test_three_char_run(self):
        """Whole run plus bigrams; no trigrams below length four."""
        self.assertEqual(sorted(cjk_tokens("数据库")), sorted(["数据库", "数据", "据库"]))

    def test_long_run_not_counted_whole(self):
        tokens = list(cjk_tokens("重构解析模块"))
        self.assertNotIn("重构解析模块", tokens)
        self.assertIn("重构", tokens)
        self.assertIn("析模块", tokens)

    def test_stopwords_filtered(self):
        self.assertEqual(tokenize("我们"), {})
        self.assertNotIn("可以", tokenize("可以重构"))

    def test_single_ideograph_ignored(self):
        self.assertEqual(list(cjk_tokens("好 坏")), [])

    def test_repeated_runs_accumulate(self):
        self.assertEqual(tokenize("测试 测试")["测试"], 4)


if __name__ == '__main__':
    unittest.main()
