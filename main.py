"""
Demo console: a tiny game-server-like host driving a Dispatcher.

    $ python main.py
    > warp set "home base" -g
    > ?warp se          (a leading "?" asks for completions instead)
    > su admin          (switch principal)
"""
import logging

from rich.console import Console
from rich.logging import RichHandler

from helmsman import *

logger = logging.getLogger("helmsman.demo")


class Principal:
    def __init__(self, name, *permissions):
        self.name = name
        self.permissions = frozenset(permissions)

    def has_permission(self, permission):
        return "*" in self.permissions or permission in self.permissions

    def __repr__(self):
        return f"principal({self.name!r})"


PRINCIPALS = {
    "guest": Principal("guest", "warps.use"),
    "admin": Principal("admin", "*"),
}


class WarpAdmin:
    def __init__(self, warps):
        self.warps = warps

    @command("set", "create", descr="create or move a warp")
    def set(
            self,
            name=Cardinal(),
            note=Cardinal(nargs="...", completer="constant:spawn,arena,shop"),
            /,
            radius=Option("-r", "--radius", type=int, default=0, completer="constant:8,16,32"),
            *,
            glow=Flag("-g", "--glow"),
            sender=Context("principal"),
    ):
        self.warps[name] = (" ".join(note), radius, glow, sender.name)
        return "warp %r saved" % name

    @command("delete", "del")
    def delete(self, name=Cardinal(completer="warp"), /):
        """remove a warp"""
        if self.warps.pop(name, None) is None:
            return "no such warp: %s" % name
        return "warp %r deleted" % name


class Warps:
    def __init__(self):
        self.warps = {}
        self.admin = branch("warpadmin", WarpAdmin(self.warps), aliases="wa", permissions="warps.admin")

    @command("warp", permissions="warps.use")
    def warp(self, name=Cardinal(completer="warp"), /, *, sender=Context("principal")):
        """teleport to a warp"""
        if name not in self.warps:
            return "no such warp: %s" % name
        return "%s warped to %s" % (sender.name, name)

    @command("warps", permissions="warps.use")
    def list(self, *, sink=Context("sink")):
        """list warps"""
        for name, (note, radius, glow, owner) in sorted(self.warps.items()):
            sink("%s (%s) r=%d%s by %s" % (name, note or "-", radius, " glowing" if glow else "", owner))

    @command("boom", permissions="demo.debug")
    def boom(self):
        """always fails (shows how handler faults are reported)"""
        raise RuntimeError("boom")


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler()])
    console = Console()
    warps = Warps()

    dispatcher = Dispatcher(
        warps,
        sink=lambda principal, line: console.print(line, markup=False, highlight=False),
        completers={"warp": NamesCompleter(lambda principal: warps.warps)},
        prefix="/",
    )

    principal = PRINCIPALS["guest"]
    while True:
        try:
            line = console.input(f"[bold]{principal.name}[/]> ")
        except (EOFError, KeyboardInterrupt):
            break
        match line.split(maxsplit=1):
            case []:
                continue
            case ["exit" | "quit"]:
                break
            case ["su", name] if name in PRINCIPALS:
                principal = PRINCIPALS[name]
            case [first, *_] if first.startswith("?"):
                console.print(dispatcher.complete(principal, line[1:]))
            case _:
                logger.debug("executed %r: %s", line, dispatcher.execute(principal, line))


if __name__ == '__main__':
    main()
