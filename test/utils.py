# python
"""
Utilities behavioral tests.

Scope
- Unset sentinel and coalesce().
- IntrospectableType: typename, mirrored read-only fields, representation.

Conventions
- Test method names follow CamelCase per project convention.
"""
import copy
import unittest
from types import MappingProxyType
from unittest import TestCase

from helmsman import Group
from helmsman.utils import Unset, UnsetType, IntrospectableType, coalesce


class Holder(metaclass=IntrospectableType):
    __introspectable__ = (
        "items",
        "table",
        "tags",
        "group",
    )

    def __init__(self, group):
        self._items = [1, 2]
        self._table = {"a": 1}
        self._tags = {"x"}
        self._group = group


class TestUnset(TestCase):

    def testSingleton(self):
        self.assertIs(UnsetType(), Unset)
        self.assertIs(copy.deepcopy(Unset), Unset)
        self.assertFalse(Unset)
        self.assertEqual(repr(Unset), "Unset")

    def testNotSubclassable(self):
        with self.assertRaises(TypeError):
            type("Other", (UnsetType,), {})

    def testUnion(self):
        self.assertIsInstance(Unset, str | Unset)
        self.assertNotIsInstance(None, str | Unset)

    def testCoalesce(self):
        self.assertEqual(coalesce(Unset, "fallback"), "fallback")
        self.assertIsNone(coalesce(Unset))
        self.assertIsNone(coalesce(None, "fallback"))
        self.assertEqual(coalesce(0, 1), 0)


class TestIntrospectableType(TestCase):

    def testTypename(self):
        self.assertEqual(Holder.__typename__, "holder")
        self.assertEqual(IntrospectableType("ParseStateLike", (), {}).__typename__, "parse-state-like")

    def testDisplayableDefaultsToIntrospectable(self):
        self.assertIs(Holder.__displayable__, Unset)
        self.assertEqual([name for name, _ in Holder(Group()).__rich_repr__()], list(Holder.__introspectable__))

    def testBuiltinContainersAreFrozen(self):
        holder = Holder(Group())
        self.assertEqual(holder.items, (1, 2))
        self.assertIsInstance(holder.table, MappingProxyType)
        self.assertEqual(holder.tags, frozenset({"x"}))

    def testOtherMappingsAreReturnedAsIs(self):
        group = Group()
        self.assertIs(Holder(group).group, group)

    def testFieldsAreReadOnly(self):
        with self.assertRaises(AttributeError):
            Holder(Group()).items = ()


if __name__ == '__main__':
    unittest.main()
