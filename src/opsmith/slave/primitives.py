"""Built-in primitives.

Every primitive validates its own arguments before touching the filesystem
or spawning a process, and reports failure by raising PrimitiveError. The
dispatcher turns those errors into Response values.
"""
from __future__ import annotations

import abc
import logging
import os
import subprocess
from pathlib import Path
from typing import FrozenSet, List, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_SHELL = "/bin/bash"
# "~/" expansion only applies on POSIX-like platforms.
EXPAND_HOME = os.name == "posix"


class PrimitiveError(Exception):
    """A primitive could not complete; the message is reported to the peer."""


class ArgumentError(PrimitiveError):
    """Wrong arity or an empty required argument (raised before any side effect)."""


def _reason(e: BaseException) -> str:
    return getattr(e, "strerror", None) or str(e)


def expand_path(path: str) -> str:
    """Rewrite a leading ``~/`` to the current user's home directory (POSIX only)."""
    if not EXPAND_HOME or not path.startswith("~/"):
        return path
    try:
        home = str(Path.home())
    except (KeyError, RuntimeError) as e:
        raise PrimitiveError(f"could not expand file path {path}: {e}") from e
    return home + "/" + path[2:]


class Primitive(abc.ABC):
    """A named, fixed-arity operation callable by a remote peer."""

    name: str = ""
    # Human-readable argument names, in positional order.
    arg_names: Tuple[str, ...] = ()
    # Arguments that may legitimately be empty strings.
    may_be_empty: FrozenSet[str] = frozenset()

    @property
    def arity(self) -> int:
        return len(self.arg_names)

    def check_args(self, args: Sequence[str]) -> None:
        if len(args) != self.arity:
            plural = "argument" if self.arity == 1 else "arguments"
            raise ArgumentError(
                f"{self.name} requires exactly {self.arity} {plural} ({', '.join(self.arg_names)}), got {len(args)}"
            )
        for arg_name, value in zip(self.arg_names, args):
            if arg_name not in self.may_be_empty and value == "":
                raise ArgumentError(f"{arg_name} cannot be empty")

    def __call__(self, args: Sequence[str]) -> str:
        self.check_args(args)
        return self.execute(list(args))

    @abc.abstractmethod
    def execute(self, args: List[str]) -> str:
        """Perform the operation on already-validated arguments."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


class ReadFile(Primitive):
    name = "ReadFile"
    arg_names = ("file path",)

    def execute(self, args: List[str]) -> str:
        path = expand_path(args[0])
        try:
            f = open(path, "rb")
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not open file {path}: {_reason(e)}") from e
        with f:
            try:
                data = f.read()
            except (OSError, ValueError) as e:
                raise PrimitiveError(f"could not read file {path}: {_reason(e)}") from e
        return data.decode("utf-8", errors="replace")


class CreateFile(Primitive):
    name = "CreateFile"
    arg_names = ("file path",)

    def execute(self, args: List[str]) -> str:
        path = expand_path(args[0])
        try:
            open(path, "wb").close()
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not create file {path}: {_reason(e)}") from e
        return f"File {path} created successfully"


class _WriteExisting(Primitive):
    """Write to a file that must already exist."""

    arg_names = ("file path", "content")
    may_be_empty = frozenset({"content"})
    open_flags: int
    verb: str
    done: str

    def execute(self, args: List[str]) -> str:
        path = expand_path(args[0])
        try:
            fd = os.open(path, self.open_flags)
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not open file {path}: {_reason(e)}") from e
        try:
            view = memoryview(args[1].encode("utf-8"))
            while view:
                view = view[os.write(fd, view):]
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not {self.verb} file {path}: {_reason(e)}") from e
        finally:
            os.close(fd)
        return self.done


class WriteFile(_WriteExisting):
    # No O_CREAT and no O_TRUNC: content overwrites from offset 0.
    name = "WriteFile"
    open_flags = os.O_WRONLY
    verb = "write to"
    done = "File written successfully"


class AppendFile(_WriteExisting):
    name = "AppendFile"
    open_flags = os.O_WRONLY | os.O_APPEND
    verb = "append to"
    done = "File appended successfully"


class DeleteFile(Primitive):
    name = "DeleteFile"
    arg_names = ("file path",)

    def execute(self, args: List[str]) -> str:
        path = expand_path(args[0])
        try:
            os.remove(path)
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not delete file {path}: {_reason(e)}") from e
        return f"File {path} deleted successfully"


class CommandExec(Primitive):
    """Run a line through a shell and return combined stdout+stderr.

    UNSAFE: the line runs with this process's privileges and is not
    sandboxed. Restrictions belong in the policy layer (see slave.policy),
    not here.
    """

    name = "CommandExec"
    arg_names = ("command",)

    def __init__(self, shell: str = DEFAULT_SHELL) -> None:
        self.shell = shell

    def execute(self, args: List[str]) -> str:
        command = args[0]
        logger.debug("CommandExec via %s: %s", self.shell, command)
        try:
            p = subprocess.run(
                [self.shell, "-c", command],
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except (OSError, ValueError) as e:
            raise PrimitiveError(f"could not execute command {command}: {_reason(e)}") from e

        if p.returncode != 0:
            if p.returncode < 0:
                reason = f"killed by signal {-p.returncode}"
            else:
                reason = f"exit status {p.returncode}"
            raise PrimitiveError(f"could not execute command {command}: {reason}")

        if not p.stdout:
            raise PrimitiveError(f"command {command} returned no output")

        return p.stdout.decode("utf-8", errors="replace")


def builtin_primitives(*, shell: str = DEFAULT_SHELL) -> List[Primitive]:
    return [
        ReadFile(),
        CreateFile(),
        DeleteFile(),
        WriteFile(),
        AppendFile(),
        CommandExec(shell=shell),
    ]
