from __future__ import annotations

import logging
from typing import Dict, Optional

import streamlit as st
from streamlit.errors import StreamlitAPIException

from calcpad.storage import PERSISTENCE_ERRORS, KeyValueStore

logger = logging.getLogger(__name__)

THEME_KEY = "calculator_theme"
LIGHT = "light"
DARK = "dark"

PALETTES: Dict[str, Dict[str, str]] = {
    LIGHT: {
        "primary": "#4A55A2",
        "secondary": "#7895CB",
        "accent": "#A0BFE0",
        "background": "#F5F5F5",
        "text": "#333333",
        "light_text": "#FFFFFF",
        "button_background": "#FFFFFF",
        "operator_button": "#FF9500",
        "function_button": "#C5C5C5",
        "number_button": "#333333",
        "shadow": "rgba(0, 0, 0, 0.1)",
        "history_background": "#FFFFFF",
        "history_item_border": "#F0F0F0",
        "history_item_highlight": "#F8F8F8",
    },
    DARK: {
        "primary": "#7895CB",
        "secondary": "#4A55A2",
        "accent": "#A0BFE0",
        "background": "#1E1E1E",
        "text": "#FFFFFF",
        "light_text": "#FFFFFF",
        "button_background": "#333333",
        "operator_button": "#FF9500",
        "function_button": "#505050",
        "number_button": "#FFFFFF",
        "shadow": "rgba(0, 0, 0, 0.3)",
        "history_background": "#2A2A2A",
        "history_item_border": "#3A3A3A",
        "history_item_highlight": "#3D3D3D",
    },
}


class ThemePreferences:
    """Light/dark preference persisted under a single key.

    Storage failures never block the toggle: the in-memory theme switches and
    the error is logged.
    """

    def __init__(self, kv: Optional[KeyValueStore] = None, *, key: str = THEME_KEY, default: str = LIGHT) -> None:
        self.kv = kv
        self.key = key
        self.default = default if default in PALETTES else LIGHT
        self.name = self.default

    @property
    def colors(self) -> Dict[str, str]:
        return PALETTES[self.name]

    @property
    def is_dark(self) -> bool:
        return self.name == DARK

    def load(self) -> str:
        saved = None
        if self.kv is not None:
            try:
                saved = self.kv.get(self.key)
            except PERSISTENCE_ERRORS as exc:
                logger.warning("Could not load theme preference: %s", exc)
        self.name = saved if saved in PALETTES else self.default
        return self.name

    def toggle(self) -> str:
        self.name = DARK if self.name == LIGHT else LIGHT
        if self.kv is not None:
            try:
                self.kv.set(self.key, self.name)
            except PERSISTENCE_ERRORS as exc:
                logger.error("Could not save theme preference: %s", exc)
        return self.name


def render_css(colors: Dict[str, str]) -> str:
    return f"""
    .stApp {{ background: {colors['background']}; color: {colors['text']}; }}
    .cp-display {{
        text-align: right; padding: 12px 16px; margin: 8px 0 16px 0;
        color: {colors['text']};
    }}
    .cp-expression {{ font-size: 1.1rem; color: {colors['secondary']}; min-height: 1.4rem; }}
    .cp-value {{ font-size: 3rem; font-weight: 300; word-break: break-all; }}
    div.stButton > button {{
        width: 100%; border-radius: 999px; font-size: 1.4rem; padding: 0.6rem 0;
        background: {colors['button_background']}; color: {colors['text']};
        border: none; box-shadow: 0 2px 4px {colors['shadow']};
    }}
    .cp-history-item {{
        padding: 8px 4px; border-bottom: 1px solid {colors['history_item_border']};
        background: {colors['history_background']}; color: {colors['text']};
    }}
    .cp-history-result {{ font-size: 1.3rem; font-weight: 600; text-align: right; }}
    .cp-history-time {{ font-size: 0.8rem; color: {colors['secondary']}; }}
    """


def set_theme(
    colors: Dict[str, str],
    page_title: str = "Calcpad",
    page_icon: str = "🧮",
    layout: str = "centered",
):
    """Configure the Streamlit page and inject the palette CSS.

    Safe to call at the top of each page; Streamlit only honours the first
    page config, the CSS is injected on every run.
    """
    try:
        st.set_page_config(page_title=page_title, page_icon=page_icon, layout=layout)
    except StreamlitAPIException:
        # set_page_config can only be called once per run.
        pass
    st.markdown(f"<style>{render_css(colors)}</style>", unsafe_allow_html=True)
