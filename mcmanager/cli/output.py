"""Formatting of the CLI output, human or machine readable.
"""

from .lang import get_raw as _raw

import shutil
import time
import sys
import re

from typing import List, Tuple, Union, Optional


class OutputTable:
    """Base class for formatting tables.
    """

    def __init__(self) -> None:
        self.rows: List[Union[None, Tuple[str, ...]]] = []
        self.columns_length: List[int] = []

    def add(self, *cells):
        """Add a row to the table, cells are converted to strings.
        """

        cells_str = tuple(map(str, cells))
        self.rows.append(cells_str)

        for i, cell in enumerate(cells_str):
            if i < len(self.columns_length):
                self.columns_length[i] = max(self.columns_length[i], len(cell))
            else:
                self.columns_length.append(len(cell))

    def separator(self) -> None:
        self.rows.append(None)

    def print(self) -> None:
        raise NotImplementedError


class Output:
    """Abstract output of the CLI, the implementation depends on the output format
    selected by the user.
    """

    def table(self) -> OutputTable:
        """Create a table builder adapted to the implementation.
        """
        raise NotImplementedError

    def task(self, state: Optional[str], key: Optional[str], **kwargs) -> None:
        """Update the current task line (or create it if not the case).
        """
        raise NotImplementedError

    def finish(self) -> None:
        """Finish any active task line.
        """
        raise NotImplementedError

    def print(self, text: str) -> None:
        """Raw print of the given text, no new line is added.
        """
        raise NotImplementedError


class HumanOutput(Output):

    state_colors = {
        "OK": "\033[92m",
        "FAILED": "\033[31m",
        "WARN": "\033[33m",
        "INFO": "\033[34m",
        "HALT": "\033[33m",
    }

    def __init__(self, color: bool) -> None:
        super().__init__()
        self.term_width = 0
        self.term_width_update_time = 0
        self.last_len = None
        self.color = color

    def get_term_width(self) -> int:
        """Terminal width, cached for 1 second.
        """
        now = time.monotonic()
        if now - self.term_width_update_time > 1:
            self.term_width_update_time = now
            self.term_width = shutil.get_terminal_size().columns
        return self.term_width

    def table(self) -> OutputTable:
        return HumanTable(self)

    def task(self, state: Optional[str], key: Optional[str], **kwargs) -> None:

        # 9 columns are used by the state header.
        term_width = self.get_term_width()
        if term_width < 20:
            return

        if state is None:
            header = "\r         "
        else:
            color = self.state_colors.get(state) if self.color else None
            if color is not None:
                header = f"\r[{color}{state:^6s}\033[0m] "
            else:
                header = f"\r[{state:^6s}] "

        print(header, end="", flush=False)

        if key is None:
            self.last_len = 0
            sys.stdout.flush()
            return

        msg = _raw(key, kwargs)
        if len(msg) + 9 > term_width:
            msg = f"{msg[:term_width - 12]}..."

        # Clear the remaining characters of the previous message.
        padding = 0 if self.last_len is None else max(0, self.last_len - len(msg))
        print(msg, " " * padding, sep="", end="", flush=True)

        self.last_len = len(msg)

    def finish(self) -> None:
        if self.last_len is not None:
            print()
            self.last_len = None

    def print(self, text: str) -> None:
        print(text, end="")


class HumanTable(OutputTable):

    def __init__(self, out: HumanOutput) -> None:
        super().__init__()
        self.out = out

    def print(self) -> None:

        columns_length = self.columns_length
        if not columns_length:
            return

        format_string = "│ {} │".format(" │ ".join(f"{{:{length}s}}" for length in columns_length))
        columns_lines = ["─" * length for length in columns_length]

        print("┌─{}─┐".format("─┬─".join(columns_lines)), flush=False)

        for row in self.rows:
            if row is None:
                print("├─{}─┤".format("─┼─".join(columns_lines)), flush=False)
            else:
                cells = list(row) + [""] * (len(columns_length) - len(row))
                print(format_string.format(*cells), flush=False)

        print("└─{}─┘".format("─┴─".join(columns_lines)))


class MachineOutput(Output):

    escape_re = re.compile("[\\n\\r,]")

    @classmethod
    def print_escape(cls, s: str) -> str:
        return cls.escape_re.sub(lambda match: {"\n": "\\n", "\r": "\\r"}.get(match.group(), "\\" + match.group()), s)

    def print_function(self, name: str, *args: str, **kwargs) -> None:
        """Print a machine-readable line for a function with some parameters.
        """
        print(name, ":", ",".join(self.print_escape(arg) for arg in [
            *args,
            *(f"{k}={v}" for k, v in kwargs.items())
        ]), sep="")

    def table(self) -> OutputTable:
        return MachineTable(self)

    def task(self, state: Optional[str], key: Optional[str], **kwargs) -> None:
        self.print_function("task", str(state), str(key), **kwargs)

    def finish(self) -> None:
        pass

    def print(self, text: str) -> None:
        self.print_function("print", text)


class MachineTable(OutputTable):

    def __init__(self, out: MachineOutput) -> None:
        super().__init__()
        self.out = out

    def print(self) -> None:
        self.out.print_function("table", str(len(self.rows)))
        for row in self.rows:
            if row is None:
                self.out.print_function("sep")
            else:
                self.out.print_function("row", *row)
