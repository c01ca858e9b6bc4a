# python
r"""
Tokenizer behavioral tests.

Scope
- tokenize(): whitespace splitting, quoting, escapes and tolerance of truncated input.
- quote(): the inverse used to present completion candidates.
- isolate(): completion support for host-split arguments.

Conventions
- Test method names follow CamelCase per project convention.
"""
import unittest
from unittest import TestCase

from helmsman import tokenize, isolate, quote


class TestTokenize(TestCase):

    def testPlainWordsSplitOnWhitespace(self):
        self.assertEqual(tokenize("warp  set\thome"), ["warp", "set", "home"])

    def testWhitespaceAloneYieldsNothing(self):
        self.assertEqual(tokenize(""), [])
        self.assertEqual(tokenize("   \t "), [])

    def testQuotesGroupWhitespace(self):
        self.assertEqual(tokenize('say "hello world"'), ["say", "hello world"])

    def testQuotesJoinAdjacentText(self):
        self.assertEqual(tokenize('a"b c"d'), ["ab cd"])

    def testEmptyQuotesYieldEmptyToken(self):
        self.assertEqual(tokenize('a ""  b'), ["a", "", "b"])

    def testUnterminatedQuoteIsTolerated(self):
        self.assertEqual(tokenize('foo "bar'), ["foo", "bar"])
        self.assertEqual(tokenize('foo "bar baz'), ["foo", "bar baz"])

    def testEscapedWhitespaceJoinsTokens(self):
        self.assertEqual(tokenize(r"a\ b"), ["a b"])

    def testEscapedBackslash(self):
        self.assertEqual(tokenize(r"a\\b"), ["a\\b"])

    def testEscapedQuoteOutsideQuotes(self):
        self.assertEqual(tokenize(r'say \"hi\"'), ["say", '"hi"'])

    def testEscapedQuoteInsideQuotes(self):
        self.assertEqual(tokenize(r'"a\"b"'), ['a"b'])

    def testInvalidEscapeKeepsBackslash(self):
        self.assertEqual(tokenize(r"a\xb"), [r"a\xb"])
        self.assertEqual(tokenize(r'"a\xb"'), [r"a\xb"])

    def testDanglingBackslashIsDropped(self):
        self.assertEqual(tokenize("foo\\"), ["foo"])
        self.assertEqual(tokenize("foo \\"), ["foo"])

    def testJoinedTokensReadBack(self):
        grids = (
            [],
            ["warp"],
            ["warp", "set", "home"],
            ["größe", "日本語", "-r", "8"],
            ["a-b", "c.d", "e:f", "'single'"],
        )
        for tokens in grids:
            with self.subTest(tokens=tokens):
                self.assertEqual(tokenize(" ".join(tokens)), tokens)

    def testNonStringRejected(self):
        with self.assertRaises(TypeError):
            tokenize(["warp"])


class TestQuote(TestCase):

    def testPlainTokenUnchanged(self):
        self.assertEqual(quote("home"), "home")

    def testTokenWithSpaceIsQuoted(self):
        self.assertEqual(quote("home base"), '"home base"')

    def testEmptyTokenIsQuoted(self):
        self.assertEqual(quote(""), '""')

    def testRoundTrip(self):
        for token in ("", "plain", "two words", 'say "hi"', "back\\slash", "tab\there", "\\", '"'):
            with self.subTest(token=token):
                self.assertEqual(tokenize(quote(token)), [token])


class TestIsolate(TestCase):

    def testEmptyArguments(self):
        self.assertEqual(isolate([]), ([], ""))

    def testLastArgumentIsTheQuery(self):
        self.assertEqual(isolate(["warp", "se"]), (["warp"], "se"))

    def testHeadIsRetokenized(self):
        self.assertEqual(isolate(["say", '"hello', 'world"', "x"]), (["say", "hello world"], "x"))

    def testQueryIsUntouched(self):
        self.assertEqual(isolate(["say", '"hel']), (["say"], '"hel'))


if __name__ == '__main__':
    unittest.main()
