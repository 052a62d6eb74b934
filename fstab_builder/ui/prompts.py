"""Operator prompts bound to the controlling terminal.

Prompts read from and write to ``/dev/tty`` so they keep working when
standard input or output is redirected. When no terminal can be opened the
prompter falls back to stdin/stdout.

Any object with ``display_lines``, ``confirm`` and ``ask`` methods can stand
in for :class:`TerminalPrompter`; tests use a scripted one.
"""

from __future__ import annotations

import sys
from typing import IO, Iterable, Optional, Protocol

from fstab_builder.logging import LoggerFactory

TTY_PATH = "/dev/tty"

log = LoggerFactory.for_system()


class Prompter(Protocol):
    def display_lines(self, lines: Iterable[str]) -> None: ...

    def confirm(self, prompt: str) -> bool: ...

    def ask(self, prompt: str) -> str: ...


def is_yes(answer: str) -> bool:
    """Only ``y`` or ``Y`` counts as confirmation."""
    return answer.strip() in ("y", "Y")


class TerminalPrompter:
    """Synchronous yes/no and free-text prompts on the terminal."""

    def __init__(
        self,
        tty_path: str = TTY_PATH,
        input_stream: Optional[IO[str]] = None,
        output_stream: Optional[IO[str]] = None,
    ):
        self._tty: Optional[IO[str]] = None
        if input_stream is None or output_stream is None:
            try:
                self._tty = open(tty_path, "r+", encoding="utf-8")
            except OSError as error:
                log.debug(f"No terminal at {tty_path} ({error}), using stdin/stdout")
        self._in = input_stream or self._tty or sys.stdin
        self._out = output_stream or self._tty or sys.stdout

    def __enter__(self) -> TerminalPrompter:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._tty is not None:
            self._tty.close()
            self._tty = None

    def display_lines(self, lines: Iterable[str]) -> None:
        for line in lines:
            self._out.write(f"{line}\n")
        self._out.flush()

    def _read(self, prompt: str) -> str:
        self._out.write(prompt)
        self._out.flush()
        answer = self._in.readline()
        if not answer:
            raise EOFError("terminal input closed")
        return answer.rstrip("\r\n")

    def confirm(self, prompt: str) -> bool:
        return is_yes(self._read(f"{prompt} (Y/N): "))

    def ask(self, prompt: str) -> str:
        return self._read(f"{prompt}: ")
