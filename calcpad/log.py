from __future__ import annotations

import logging

_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_configured = False


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once per process.

    Streamlit re-executes page scripts on every interaction, so repeated calls
    only adjust the level.
    """
    global _configured
    resolved = logging.getLevelName(str(level).upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO
    if not _configured:
        logging.basicConfig(level=resolved, format=_FORMAT)
        _configured = True
    logging.getLogger("calcpad").setLevel(resolved)
