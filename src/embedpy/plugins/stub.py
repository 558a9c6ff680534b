"""Type stub for plugin authors, kept in the user plugin directory."""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path

from embedpy.api import interface_version
from embedpy.state import STUB_VERSION, HostState

logger = logging.getLogger(__name__)

STUB_FILE = "embedpy.pyi"


def render_stub() -> str:
    return textwrap.dedent(f"""\
        # embedpy plugin API v{interface_version()}
        import logging
        from typing import Any

        MAJOR_INTERFACE_VERSION: int
        MINOR_INTERFACE_VERSION: int

        def interface_version() -> str: ...

        class PluginInstance:
            id: str
            metadata: Any
            logger: logging.Logger
            def bind(self, plugin_id: str, metadata: Any) -> None: ...
            def initialize(self) -> None: ...
            def finalize(self) -> None: ...

        # Injected into every plugin module before it executes
        def debug(msg: str) -> None: ...
        def info(msg: str) -> None: ...
        def warning(msg: str) -> None: ...
        def critical(msg: str) -> None: ...
    """)


def update_stub_file(plugin_dir: Path, state: HostState) -> Path:
    """Write the stub unless an up to date one is already there.

    A stub written for another interface version is replaced. Failures are
    logged and otherwise ignored.
    """
    stub_path = plugin_dir / STUB_FILE
    current = interface_version()

    if state.get(STUB_VERSION) != current and stub_path.exists():
        try:
            stub_path.unlink()
        except OSError as e:
            logger.warning("Failed removing former stub file %s: %s", stub_path, e)

    if not stub_path.exists():
        logger.info("Writing stub file to %s", stub_path)
        try:
            plugin_dir.mkdir(parents=True, exist_ok=True)
            stub_path.write_text(render_stub())
        except OSError as e:
            logger.warning("Failed writing stub file to %s: %s", stub_path, e)
        else:
            state.set(STUB_VERSION, current)

    return stub_path
