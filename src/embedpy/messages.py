"""User-visible message templates.

Templates use positional ``%1``, ``%2`` placeholders so they can be handed
to translators unchanged. Use :func:`fmt` to fill them in.
"""

from __future__ import annotations

import re

VENV_INIT_FAILED = "Failed initializing virtual environment. Exit code: %1."
NOT_IN_PATH = "No '%1' in $PATH."
LOADING = "Loading: %1 ms"
INSTALL_FAILED = "Failed installing dependencies"
RESET_RESTART = "Resetting the virtual environment requires a restart. Restart now?"
USER_DECLINED_INSTALL = "missing dependencies, user declined install"

PROCESS_TIMED_OUT = "'%1' timed out (%2s)."
PROCESS_CRASHED = "'%1' crashed."
PROCESS_EXIT_CODE = "'%1' finished with exit code: %2."

_PLACEHOLDER = re.compile(r"%(\d+)")


def fmt(template: str, *args: object) -> str:
    """Substitute positional ``%N`` placeholders in a template.

    Placeholders without a matching argument are left untouched.

    Args:
        template: Message template
        *args: Values for ``%1``, ``%2``, ...

    Returns:
        The formatted message
    """

    def _sub(match: re.Match[str]) -> str:
        index = int(match.group(1)) - 1
        if 0 <= index < len(args):
            return str(args[index])
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, template)
