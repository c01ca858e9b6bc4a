# python
"""
Dispatcher behavioral tests.

Scope
- execute(): handler invocation, context injection, feedback lines for every
  fault kind, handler faults and logging.
- complete(): labels, subcommands, flag values, unused flags, positionals and
  rest arguments, quoting; completion never raises.
- construction checks.

Conventions
- Test method names follow CamelCase per project convention.
- The sink records (principal, line) pairs; lines() returns the lines only.
"""
import unittest
from unittest import TestCase

from rich.text import Text

from helmsman import (
    Cardinal, Option, Flag, Context, Command, Dispatcher, NamesCompleter,
    command, branch,
)


class Principal:
    def __init__(self, name, *permissions):
        self.name = name
        self.permissions = frozenset(permissions)

    def has_permission(self, permission):
        return "*" in self.permissions or permission in self.permissions

    def __repr__(self):
        return f"principal({self.name!r})"


GUEST = Principal("guest", "warps.use")
MOD = Principal("mod", "warps.admin")
ADMIN = Principal("admin", "*")


class WarpAdmin:
    def __init__(self, warps):
        self.warps = warps

    @command("set", "create", descr="create or move a warp")
    def set(
            self,
            name=Cardinal(),
            note=Cardinal(nargs="...", completer="constant:spawn,arena"),
            /,
            radius=Option("-r", "--radius", type=int, default=0, completer="constant:8,16", descr="radius in blocks"),
            *,
            glow=Flag("-g", "--glow"),
            sender=Context("principal"),
    ):
        self.warps[name] = (" ".join(note), radius, glow, sender.name)
        return "saved %s" % name

    @command("delete", "del", permissions="warps.delete")
    def delete(self, name=Cardinal(completer="warp"), /):
        del self.warps[name]


class Warps:
    def __init__(self):
        self.warps = {}
        self.admin = branch("warpadmin", WarpAdmin(self.warps), aliases="wa", permissions="warps.admin")

    @command("warp", "w", permissions="warps.use")
    def warp(self, name=Cardinal(completer="warp"), /, *, label=Context("label")):
        return "%s: %s" % (label, name)

    @command("warps", permissions="warps.use")
    def list(self, *, sink=Context("sink")):
        sink("one\ntwo")
        sink(["three", Text("four")])
        return "five"

    @command("boom", permissions="demo.debug")
    def boom(self):
        raise RuntimeError("boom")

    @command("exhaust", permissions="demo.debug")
    def exhaust(self):
        raise MemoryError


class Failing:
    def complete(self, partial, context, /):
        raise RuntimeError("completer failed")


class Exhausting:
    def complete(self, partial, context, /):
        raise MemoryError


class DispatcherTestCase(TestCase):

    def setUp(self):
        self.received = []
        self.handler = Warps()
        self.dispatcher = self.build()

    def build(self, **options):
        options.setdefault("completers", {"warp": NamesCompleter(lambda principal: list(self.handler.warps))})
        return Dispatcher(self.handler, sink=self.sink, **options)

    def sink(self, principal, line):
        self.received.append((principal, line))

    def lines(self):
        return [line for _, line in self.received]


class TestExecute(DispatcherTestCase):

    def testSuccess(self):
        self.assertTrue(self.dispatcher.execute(GUEST, "warp home"))
        self.assertEqual(self.received, [(GUEST, "warp: home")])

    def testLabelIsTheTypedAlias(self):
        self.dispatcher.execute(GUEST, "w home")
        self.assertEqual(self.lines(), ["w: home"])

    def testQuotedArgumentsAndFlags(self):
        self.assertTrue(self.dispatcher.execute(ADMIN, 'wa set "home base" -g -r 8 first note'))
        self.assertEqual(self.handler.warps, {"home base": ("first note", 8, True, "admin")})
        self.assertEqual(self.lines(), ["saved home base"])

    def testNoneResultSendsNothing(self):
        self.handler.warps["home"] = ()
        self.assertTrue(self.dispatcher.execute(ADMIN, "wa del home"))
        self.assertEqual(self.received, [])
        self.assertEqual(self.handler.warps, {})

    def testSinkAndResultAreSplitIntoLines(self):
        self.assertTrue(self.dispatcher.execute(GUEST, "warps"))
        self.assertEqual(self.lines(), ["one", "two", "three", "four", "five"])
        self.assertTrue(all(principal is GUEST for principal, _ in self.received))

    def testEmptyLine(self):
        self.assertFalse(self.dispatcher.execute(GUEST, "   "))
        self.assertFalse(self.dispatcher.execute(GUEST, []))
        self.assertEqual(self.received, [])

    def testHostSplitArguments(self):
        self.assertTrue(self.dispatcher.execute(ADMIN, ["wa", "set", '"home', 'base"', "-g"]))
        self.assertIn("home base", self.handler.warps)

    def testUnquoted(self):
        dispatcher = self.build(quoted=False)
        self.assertTrue(dispatcher.execute(ADMIN, 'wa set "home base"'))
        self.assertEqual(self.handler.warps, {'"home': ('base"', 0, False, "admin")})

    def testMissingArgument(self):
        self.assertFalse(self.dispatcher.execute(GUEST, "warp"))
        self.assertEqual(self.lines(), ["missing argument: name", "usage: warp <name>"])

    def testUsagePrefix(self):
        self.build(prefix="/").execute(GUEST, "w")
        self.assertEqual(self.lines(), ["missing argument: name", "usage: /w <name>"])

    def testUnknownCommand(self):
        self.assertFalse(self.dispatcher.execute(ADMIN, "nope"))
        self.assertEqual(self.lines(), ["unknown command: nope"])

    def testMissingSubcommand(self):
        self.assertFalse(self.dispatcher.execute(ADMIN, "wa"))
        self.assertEqual(self.lines(), [
            "missing subcommand",
            "usage: wa",
            "  set, create: create or move a warp",
            "  delete, del",
        ])

    def testUnknownSubcommand(self):
        self.assertFalse(self.dispatcher.execute(ADMIN, "warpadmin fly"))
        self.assertEqual(self.lines(), [
            "unknown subcommand: fly",
            "usage: warpadmin",
            "  set, create: create or move a warp",
            "  delete, del",
        ])

    def testSubcommandListFilteredByPermission(self):
        self.assertFalse(self.dispatcher.execute(MOD, "wa fly"))
        self.assertEqual(self.lines(), [
            "unknown subcommand: fly",
            "usage: wa",
            "  set, create: create or move a warp",
        ])

    def testPermissionDeniedHasNoUsage(self):
        self.assertFalse(self.dispatcher.execute(GUEST, "wa set home"))
        self.assertEqual(self.lines(), ["you need the following permission to do that: warps.admin"])
        self.assertEqual(self.handler.warps, {})

    def testPermissionDeniedOnSubcommand(self):
        self.assertFalse(self.dispatcher.execute(MOD, "wa del home"))
        self.assertEqual(self.lines(), ["you need the following permission to do that: warps.delete"])

    def testPermissionsShortCircuit(self):
        calls = []

        def permits(principal, permission):
            calls.append(permission)
            return False

        self.build(permits=permits).execute(ADMIN, "wa del home")
        self.assertEqual(calls, ["warps.admin"])

    def testInvalidValue(self):
        self.assertFalse(self.dispatcher.execute(ADMIN, "wa set home -r abc"))
        self.assertEqual(self.lines(), [
            "invalid value for -r: 'abc'",
            "usage: wa set [-r <value>] [-g] <name> [<note>...]",
            "  -r: radius in blocks",
        ])

    def testMissingFlagValue(self):
        self.assertFalse(self.dispatcher.execute(ADMIN, "wa create home --radius"))
        self.assertEqual(self.lines(), [
            "missing value for flag: --radius",
            "usage: wa create [-r <value>] [-g] <name> [<note>...]",
            "  -r: radius in blocks",
        ])

    def testTooManyArguments(self):
        self.assertFalse(self.dispatcher.execute(GUEST, "warp home away"))
        self.assertEqual(self.lines(), ["too many arguments: away", "usage: warp <name>"])

    def testHandlerFault(self):
        with self.assertLogs("helmsman.dispatch", "ERROR") as logs:
            self.assertFalse(self.dispatcher.execute(ADMIN, "boom"))
        self.assertEqual(self.lines(), ["internal error; see server log"])
        self.assertIn("boom", logs.output[0])
        self.assertIn("RuntimeError", logs.output[0])

    def testFailingPermissionEvaluator(self):
        def permits(principal, permission):
            raise RuntimeError("permission backend down")

        dispatcher = self.build(permits=permits)
        with self.assertLogs("helmsman.dispatch", "ERROR") as logs:
            self.assertFalse(dispatcher.execute(GUEST, "warp home"))
        self.assertEqual(self.lines(), ["internal error; see server log"])
        self.assertIn("permission backend down", logs.output[0])

    def testPrincipalWithoutPermissions(self):
        with self.assertLogs("helmsman.dispatch", "ERROR") as logs:
            self.assertFalse(self.dispatcher.execute(object(), "warp home"))
        self.assertEqual(self.lines(), ["internal error; see server log"])
        self.assertIn("AttributeError", logs.output[0])

    def testMemoryErrorPropagates(self):
        with self.assertRaises(MemoryError):
            self.dispatcher.execute(ADMIN, "exhaust")

    def testMemoryErrorFromPermissionEvaluatorPropagates(self):
        def permits(principal, permission):
            raise MemoryError

        with self.assertRaises(MemoryError):
            self.build(permits=permits).execute(GUEST, "warp home")

    def testColorful(self):
        self.build(colorful=True).execute(ADMIN, "nope")
        self.assertEqual(len(self.received), 1)
        self.assertIn("\x1b[", self.lines()[0])
        self.assertIn("unknown command: nope", self.lines()[0])

    def testInclude(self):
        self.dispatcher.include(Command(lambda: "hi", "hello"))
        self.assertTrue(self.dispatcher.execute(GUEST, "hello"))
        self.assertEqual(self.lines(), ["hi"])
        self.assertIn("hello", self.dispatcher.root)

    def testLineTypeChecked(self):
        with self.assertRaises(TypeError):
            self.dispatcher.execute(GUEST, 1)
        with self.assertRaises(TypeError):
            self.dispatcher.execute(GUEST, ["warp", 1])


class TestConfiguration(DispatcherTestCase):

    def testSinkMustBeCallable(self):
        with self.assertRaises(TypeError):
            Dispatcher(self.handler, sink=None)

    def testPermitsMustBeCallable(self):
        with self.assertRaises(TypeError):
            self.build(permits=True)

    def testWidthMustBePositive(self):
        with self.assertRaises(ValueError):
            self.build(width=0)

    def testUnknownStylesRejected(self):
        with self.assertRaises(ValueError):
            self.build(styles={"bogus": "red"})

    def testStylesOverride(self):
        dispatcher = self.build(styles={"error-message": "blue"}, colorful=True)
        dispatcher.execute(ADMIN, "nope")
        self.assertIn("\x1b[34m", self.lines()[0])

    def testCompletersMergedOverBuiltIns(self):
        self.assertEqual(sorted(self.dispatcher.completers), ["constant", "warp"])

    def testLabelClashRejected(self):
        with self.assertRaises(ValueError):
            Dispatcher(self.handler, Command(lambda: None, "w"), sink=self.sink)


class TestComplete(DispatcherTestCase):

    def setUp(self):
        super().setUp()
        self.handler.warps.update({"home base": (), "Spawn": ()})

    def testRootLabelsFilteredByPermission(self):
        self.assertEqual(self.dispatcher.complete(GUEST, ""), ["w", "warp", "warps"])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa"), ["wa", "warp", "warpadmin", "warps"])

    def testCaseInsensitive(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "WA"), ["wa", "warp", "warpadmin", "warps"])

    def testSubcommandsFilteredByPermission(self):
        self.assertEqual(self.dispatcher.complete(MOD, "wa "), ["create", "set"])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa "), ["create", "del", "delete", "set"])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa d"), ["del", "delete"])

    def testPositionalQuoted(self):
        self.assertEqual(self.dispatcher.complete(GUEST, "warp "), ["Spawn", '"home base"'])
        self.assertEqual(self.dispatcher.complete(GUEST, "warp H"), ['"home base"'])

    def testOpeningQuoteIsNotPartOfTheQuery(self):
        self.assertEqual(self.dispatcher.complete(GUEST, 'warp "ho'), ['"home base"'])
        self.assertEqual(self.dispatcher.complete(GUEST, ["warp", '"ho']), ['"home base"'])

    def testUnquoted(self):
        dispatcher = self.build(quoted=False)
        self.assertEqual(dispatcher.complete(GUEST, "warp h"), ["home base"])

    def testAwaitingFlagValue(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home -r "), ["16", "8"])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home --radius 1"), ["16"])

    def testUnusedFlags(self):
        self.assertEqual(
            self.dispatcher.complete(ADMIN, "wa set home -"),
            ["--glow", "--radius", "-g", "-r"],
        )
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home -g -"), ["--radius", "-r"])

    def testRestNext(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home "), ["arena", "spawn"])

    def testRestInProgress(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home first s"), ["spawn"])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa set home first -"), [])

    def testNothingLeftSuggestsFlags(self):
        self.assertEqual(self.dispatcher.complete(GUEST, "warps "), [])

    def testHostSplitArguments(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, ["wa", "s"]), ["set"])
        self.assertEqual(self.dispatcher.complete(ADMIN, ["wa"], query=False), ["create", "del", "delete", "set"])

    def testQueryDisabled(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa", query=False), ["create", "del", "delete", "set"])

    def testNeverRaises(self):
        self.assertEqual(self.dispatcher.complete(ADMIN, "nope "), [])
        self.assertEqual(self.dispatcher.complete(GUEST, "wa "), [])
        self.assertEqual(self.dispatcher.complete(ADMIN, "wa fly "), [])
        self.assertEqual(self.dispatcher.complete(GUEST, "warp home away "), [])

    def testFailingCompleterIsLogged(self):
        dispatcher = self.build(completers={"warp": Failing()})
        with self.assertLogs("helmsman.dispatch", "WARNING") as logs:
            self.assertEqual(dispatcher.complete(GUEST, "warp "), [])
        self.assertIn("completer failed", "\n".join(logs.output))

    def testUnknownCompleterTagIsLogged(self):
        dispatcher = self.build(completers={})
        with self.assertLogs("helmsman.dispatch", "WARNING"):
            self.assertEqual(dispatcher.complete(GUEST, "warp "), [])

    def testMemoryErrorPropagates(self):
        dispatcher = self.build(completers={"warp": Exhausting()})
        with self.assertRaises(MemoryError):
            dispatcher.complete(GUEST, "warp ")


if __name__ == '__main__':
    unittest.main()
