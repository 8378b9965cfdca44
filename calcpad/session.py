from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from typing import Optional

from calcpad.config import CalculatorConfig, get_config
from calcpad.history import HistoryStore
from calcpad.log import configure_logging
from calcpad.machine import Calculator
from calcpad.storage import KeyValueStore, SqlKeyValueStore
from calcpad.theme import ThemePreferences

logger = logging.getLogger(__name__)


@dataclass
class CalculatorSession:
    """Per-user objects kept in ``st.session_state``."""

    calculator: Calculator
    history: HistoryStore
    theme: ThemePreferences
    # Flushes history when the session is collected or the interpreter exits.
    finalizer: Optional[weakref.finalize] = field(default=None, repr=False, compare=False)

    def close(self) -> None:
        if self.finalizer is not None:
            self.finalizer()
        else:
            self.history.close()


def build_session(
    config: Optional[CalculatorConfig] = None,
    kv: Optional[KeyValueStore] = None,
) -> CalculatorSession:
    """Wire the calculator, its history and theme to one key-value store.

    History and theme are loaded once here; load failures leave an empty
    history and the default theme.
    """
    cfg = config or get_config()
    configure_logging(cfg.log_level)
    store = kv if kv is not None else SqlKeyValueStore(cfg.database_url)

    history = HistoryStore(store, key=cfg.history_key, flush_delay=cfg.flush_delay_seconds)
    history.load_all()

    theme = ThemePreferences(store, key=cfg.theme_key, default=cfg.default_theme)
    theme.load()

    logger.info("Calculator session ready (%d history entries, %s theme)", len(history), theme.name)
    session = CalculatorSession(calculator=Calculator(history), history=history, theme=theme)
    session.finalizer = weakref.finalize(session, history.close)
    return session
