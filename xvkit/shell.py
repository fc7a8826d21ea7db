"""Parser for shell command lines: pipes, lists, background jobs, redirections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from xvkit.params import OpenFlag

MAXARGS = 10
WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"


class ShellSyntaxError(ValueError):
    """Raised when a command line cannot be parsed."""


@dataclass
class ExecCmd:
    """Run a program with arguments."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run cmd with fd reopened on file."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCmd:
    """Connect left's output to right's input."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run left, wait for it, then run right."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run cmd without waiting."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Parser:
    """Recursive-descent parser over one command line."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def _skip_whitespace(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos] in WHITESPACE:
            self.pos += 1

    def gettoken(self) -> tuple[str, str]:
        """Consume a token; returns (kind, text), kind '' at the end.

        Kinds are the symbol itself, '+' for '>>' and 'a' for a word.
        """
        text = self.text
        self._skip_whitespace()
        start = self.pos
        if start >= len(text):
            kind = ""
        else:
            c = text[start]
            if c in "|();&<":
                kind = c
                self.pos += 1
            elif c == ">":
                kind = ">"
                self.pos += 1
                if self.pos < len(text) and text[self.pos] == ">":
                    kind = "+"
                    self.pos += 1
            else:
                kind = "a"
                while (
                    self.pos < len(text)
                    and text[self.pos] not in WHITESPACE
                    and text[self.pos] not in SYMBOLS
                ):
                    self.pos += 1
        word = text[start:self.pos]
        self._skip_whitespace()
        return kind, word

    def peek(self, toks: str) -> bool:
        """Skip whitespace; true if the next character is one of toks."""
        self._skip_whitespace()
        return self.pos < len(self.text) and self.text[self.pos] in toks

    def parse_line(self) -> Command:
        """line: pipe ('&')* (';' line)?"""
        cmd = self.parse_pipe()
        while self.peek("&"):
            self.gettoken()
            cmd = BackCmd(cmd)
        if self.peek(";"):
            self.gettoken()
            cmd = ListCmd(cmd, self.parse_line())
        return cmd

    def parse_pipe(self) -> Command:
        """pipe: exec ('|' pipe)?"""
        cmd = self.parse_exec()
        if self.peek("|"):
            self.gettoken()
            cmd = PipeCmd(cmd, self.parse_pipe())
        return cmd

    def parse_redirs(self, cmd: Command) -> Command:
        """Wrap cmd in any redirections that follow."""
        while self.peek("<>"):
            tok, _ = self.gettoken()
            kind, word = self.gettoken()
            if kind != "a":
                raise ShellSyntaxError("missing file for redirection")
            if tok == "<":
                cmd = RedirCmd(cmd, word, int(OpenFlag.RDONLY), 0)
            else:
                cmd = RedirCmd(cmd, word, int(OpenFlag.WRONLY | OpenFlag.CREATE), 1)
        return cmd

    def parse_block(self) -> Command:
        """block: '(' line ')' redirs"""
        if not self.peek("("):
            raise ShellSyntaxError("parseblock")
        self.gettoken()
        cmd = self.parse_line()
        if not self.peek(")"):
            raise ShellSyntaxError("syntax - missing )")
        self.gettoken()
        return self.parse_redirs(cmd)

    def parse_exec(self) -> Command:
        """exec: block | (word | redir)*"""
        if self.peek("("):
            return self.parse_block()
        cmd = ExecCmd()
        ret = self.parse_redirs(cmd)
        while not self.peek("|)&;"):
            kind, word = self.gettoken()
            if kind == "":
                break
            if kind != "a":
                raise ShellSyntaxError("syntax")
            cmd.argv.append(word)
            if len(cmd.argv) >= MAXARGS:
                raise ShellSyntaxError("too many args")
            ret = self.parse_redirs(ret)
        return ret


def parse_command(line: str) -> Command:
    """Parse a whole command line; raises ShellSyntaxError on leftovers."""
    parser = Parser(line)
    cmd = parser.parse_line()
    parser.peek("")
    if parser.pos != len(line):
        raise ShellSyntaxError(f"leftovers: {line[parser.pos:]}")
    return cmd


def cd_target(line: str) -> Optional[str]:
    """Directory named by a 'cd ' line, or None for any other line."""
    if not line.startswith("cd "):
        return None
    if line.endswith(("\n", "\r")):
        line = line[:-1]
    return line[3:]