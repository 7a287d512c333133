"""
getopt front-end tests (std, long, long_only).

Scope
- Results table filling and boolean outcome.
- Flag bindings and callbacks declared in long-option tables.
- Diagnostics reporting on stderr (libc's opterr) and the silent ':' prefix.

Conventions
- Test method names follow CamelCase per project convention.
- stderr output is captured through the shared rich console.
"""
import os
import sys
import unittest
from unittest import TestCase, mock

from optscan import Environment, getopt
from optscan.faults import console


class GetoptTestCase(TestCase):
    def setUp(self):
        self.enterContext(mock.patch.dict(os.environ))
        os.environ.pop("POSIXLY_CORRECT", None)
        self.results = {}


class TestStd(GetoptTestCase):
    """Behavioral tests for getopt.std()."""

    def testFillsResults(self):
        self.assertTrue(getopt.std("vo:", self.results, ["-v", "-o", "out.txt", "input.txt"]))
        self.assertEqual(self.results, {"v": True, "o": "out.txt"})

    def testShellString(self):
        self.assertTrue(getopt.std("a:", self.results, "-a 'b c'"))
        self.assertEqual(self.results, {"a": "b c"})

    def testDefaultsToSysArgv(self):
        with mock.patch.object(sys, "argv", ["prog", "-v"]):
            self.assertTrue(getopt.std("v", self.results))
        self.assertEqual(self.results, {"v": True})

    def testFailureIsReported(self):
        with console.capture() as capture:
            self.assertFalse(getopt.std("x", self.results, ["-z", "-x"], prog="demo"))
        output = capture.get()
        self.assertIn("demo", output)
        self.assertIn("invalid option -- 'z' at first position", output)
        self.assertEqual(self.results, {"x": True})

    def testReportDisabled(self):
        with console.capture() as capture:
            self.assertFalse(getopt.std("x", self.results, ["-z"], report=False))
        self.assertEqual(capture.get(), "")

    def testSilentOptionString(self):
        with console.capture() as capture:
            self.assertFalse(getopt.std(":x", self.results, ["-z"]))
            self.assertFalse(getopt.std("+:x:", self.results, ["-x"]))
        self.assertEqual(capture.get(), "")

    def testPosixOption(self):
        self.assertTrue(getopt.std("x", self.results, ["a", "-x"], posix=True))
        self.assertEqual(self.results, {})
        self.assertTrue(getopt.std("x", self.results, ["a", "-x"], posix=False))
        self.assertEqual(self.results, {"x": True})

    def testArgumentValidation(self):
        with self.assertRaises(TypeError):
            getopt.std(1, self.results, [])
        with self.assertRaises(TypeError):
            getopt.std("x", [], [])
        with self.assertRaises(ValueError):
            getopt.std("x?", self.results, [])


class TestLong(GetoptTestCase):
    """Behavioral tests for getopt.long() and getopt.long_only()."""

    def testLongWithShortAlias(self):
        self.assertTrue(getopt.long("v", {"verbose": {"short": "v"}}, self.results, ["--verbose"]))
        self.assertEqual(self.results, {"v": True})

    def testLongNameAsKey(self):
        self.assertTrue(getopt.long("", {"output": 1}, self.results, ["--out", "a.txt"]))
        self.assertEqual(self.results, {"output": "a.txt"})

    def testFlagEntry(self):
        scope = {"debug": False}
        self.assertTrue(getopt.long(
            "", {"debug": {"flag": "debug"}, "quiet": {"flag": "level", "value": 0}},
            self.results, ["--debug", "--quiet"],
            environment=Environment(scope, globals=scope),
        ))
        self.assertEqual(scope, {"debug": True, "level": 0})
        self.assertEqual(self.results, {})

    def testCallbackEntry(self):
        loaded = []
        self.assertTrue(getopt.long("", {"load": {"has_arg": 1, "callback": loaded.append}}, self.results, ["--load=a"]))
        self.assertEqual(loaded, ["a"])

    def testCallbackFailure(self):
        with console.capture() as capture:
            self.assertFalse(getopt.long(
                "", {"count": {"has_arg": 1, "callback": int}}, self.results, ["--count", "x"], prog="demo",
            ))
        self.assertIn("handler for option 'count' raised ValueError", capture.get())

    def testAmbiguousIsReported(self):
        with console.capture() as capture:
            self.assertFalse(getopt.long("", {"verbose": 0, "version": 0}, self.results, ["--ver"], prog="demo"))
        self.assertIn("possibilities: '--verbose' '--version'", capture.get())

    def testLongOnly(self):
        self.assertTrue(getopt.long_only("v", {"width": 1}, self.results, ["-width=80", "-v"]))
        self.assertEqual(self.results, {"width": "80", "v": True})


if __name__ == "__main__":
    unittest.main()
