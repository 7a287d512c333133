"""
Tests for the internal utilities.

This module verifies:
- Unset singleton semantics (identity, falsiness, copy/pickle, thread safety, finality).
- coalesce() preserving legitimate falsey values.
- rename() in function and decorator form.
- freeze()/mirror() read-only snapshots.
- ordinal() labels used in position-first messages.
- version() and version_info of the package.
"""
import copy
import pickle
import unittest
from threading import Thread, Lock
from types import MappingProxyType
from unittest import TestCase

from optscan.utils import *


class UnsetTest(TestCase):
    """
    Test suite for the `UnsetType` singleton.
    """

    def setUp(self) -> None:
        self.unset: UnsetType = UnsetType()

    def testSingleton(self) -> None:
        """
        The constructor returns the same object reference on every call.
        """
        self.assertIs(self.unset, UnsetType())
        self.assertIs(Unset, self.unset)

    def testRepr(self) -> None:
        self.assertEqual(repr(self.unset), "Unset")
        self.assertEqual(str(self.unset), "Unset")

    def testFalsely(self) -> None:
        self.assertFalse(bool(self.unset))

    def testNotEqualToNoneOrFalse(self) -> None:
        """
        Falsy does not imply equality with other falsy values (None/False).
        """
        self.assertNotEqual(self.unset, None)
        self.assertNotEqual(self.unset, False)  # noqa: E712

    def testUnionWithTypes(self) -> None:
        """
        `str | Unset` is usable in isinstance checks.
        """
        self.assertIsInstance("text", str | Unset)
        self.assertIsInstance(Unset, str | Unset)
        self.assertNotIsInstance(1, str | Unset)

    def testCopyDeepcopyPreserveSingleton(self) -> None:
        self.assertIs(copy.copy(self.unset), self.unset)
        self.assertIs(copy.deepcopy(self.unset), self.unset)

    def testPickleRoundTrip(self) -> None:
        data: bytes = pickle.dumps(self.unset)
        self.assertIs(pickle.loads(data), self.unset)

    def testThreadSafetySingleton(self) -> None:
        """
        Concurrent constructions return the same instance (thread-safe singleton).
        """
        results: list[UnsetType] = []
        lock: Lock = Lock()

        def worker():
            instance = UnsetType()
            with lock:
                results.append(instance)

        threads: list[Thread] = [Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(results), 16)
        for instance in results:
            self.assertIs(instance, self.unset)

    def testFinalClass(self) -> None:
        with self.assertRaises(TypeError):
            type("UnsetType", (UnsetType,), {})


class HelpersTest(TestCase):
    """
    Behavioral tests for coalesce, rename, freeze, mirror and ordinal.
    """

    def testCoalesceReplacesOnlyUnset(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)
        self.assertEqual(coalesce("", "fallback"), "")

    def testRenameFunctionForm(self):
        def f():
            pass

        self.assertIs(rename(f, "work"), f)
        self.assertEqual(f.__name__, "work")
        self.assertEqual(f.__qualname__, "work")

    def testRenameDecoratorForm(self):
        @rename("work")
        def f():
            pass

        self.assertEqual(f.__name__, "work")

    def testRenameRejectsBadArguments(self):
        with self.assertRaises(TypeError):
            rename(1, "name")
        with self.assertRaises(TypeError):
            rename(lambda: None, 1)
        with self.assertRaises(TypeError):
            rename()

    def testFreeze(self):
        self.assertEqual(freeze([1, 2]), (1, 2))
        self.assertIsInstance(freeze({"a": 1}), MappingProxyType)
        self.assertEqual(freeze({1, 2}), frozenset({1, 2}))
        self.assertEqual(freeze("text"), "text")
        point = (1, 2)
        self.assertIs(freeze(point), point)

    def testMirrorIsReadOnly(self):
        class Holder:
            items = mirror("items")

            def __init__(self):
                self._items = [1, 2]

        holder = Holder()
        self.assertEqual(holder.items, (1, 2))
        with self.assertRaises(AttributeError):
            holder.items = ()

    def testOrdinalWords(self):
        self.assertEqual(ordinal(1), "first")
        self.assertEqual(ordinal(3), "third")
        self.assertEqual(ordinal(10), "tenth")

    def testOrdinalSuffixes(self):
        self.assertEqual(ordinal(11), "11th")
        self.assertEqual(ordinal(12), "12th")
        self.assertEqual(ordinal(21), "21st")
        self.assertEqual(ordinal(22), "22nd")
        self.assertEqual(ordinal(23), "23rd")
        self.assertEqual(ordinal(111), "111th")

    def testVersion(self):
        import optscan

        self.assertEqual(optscan.version(), optscan.__version__)
        self.assertIsInstance(optscan.version(), str)
        self.assertEqual(optscan.version_info[:3], (0, 0, 0))


if __name__ == '__main__':
    unittest.main()
