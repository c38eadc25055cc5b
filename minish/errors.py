"""Error reporting and the numeric parsing used by the ``exit`` builtin."""

from __future__ import annotations

import re
import sys
from typing import Optional, TextIO

LONG_MAX = 2**63 - 1

_NUMBER = re.compile(r"[\t\n\v\f\r ]*\+?(-?)([0-9]*)")


class ShellExit(Exception):
    """Raised where the shell must terminate with a given exit status.

    ``message``, when set, is the diagnostic that should be written to
    standard error before leaving.
    """

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        super().__init__(message if message is not None else f"exit {status}")
        self.status = status
        self.message = message


def print_error(*args: Optional[str], stream: Optional[TextIO] = None) -> None:
    """Write the non-empty parts joined by ``": "`` as one line to ``stream``.

    ``stream`` defaults to standard error; ``None`` parts are skipped.
    """
    target = sys.stderr if stream is None else stream
    target.write(": ".join(str(part) for part in args if part is not None) + "\n")
    target.flush()


def parse_long(text: str) -> int:
    """Parse a signed 64-bit integer the way ``exit`` reads its argument.

    Leading whitespace is skipped, an optional ``+`` and then an optional
    ``-`` are accepted, and digits are read until the first non-digit.
    A value outside the signed 64-bit range raises :class:`ShellExit`
    with status 2.
    """
    match = _NUMBER.match(text)
    sign = -1 if match.group(1) else 1
    digits = match.group(2)
    value = int(digits) if digits else 0
    limit = LONG_MAX if sign == 1 else LONG_MAX + 1
    if value > limit:
        raise ShellExit(2, f"exit: {text}: numeric argument required")
    return sign * value