import html

import streamlit as st

from calcpad.session import build_session
from calcpad.theme import set_theme


if "cp_session" not in st.session_state:
    st.session_state.cp_session = build_session()

session = st.session_state.cp_session
calc = session.calculator

set_theme(session.theme.colors)


KEYPAD = [
    ["AC", "⌫", "%", "÷"],
    ["7", "8", "9", "×"],
    ["4", "5", "6", "-"],
    ["1", "2", "3", "+"],
    ["±", "0", ".", "="],
]


def format_time(ts) -> str:
    return ts.astimezone().strftime("%H:%M")


# ----- Settings -----
with st.sidebar:
    st.header("Settings")
    dark = st.toggle("Dark mode", value=session.theme.is_dark)
    if dark != session.theme.is_dark:
        session.theme.toggle()
        st.rerun()
    history_label = "Hide history" if calc.history_visible else "Show history"
    st.button(history_label, on_click=calc.toggle_history, use_container_width=True)


# ----- Display -----
view = calc.display
st.markdown(
    '<div class="cp-display">'
    f'<div class="cp-expression">{html.escape(view.display_expression)}</div>'
    f'<div class="cp-value">{html.escape(view.current_value)}</div>'
    "</div>",
    unsafe_allow_html=True,
)


# ----- Keypad -----
for r, row in enumerate(KEYPAD):
    cols = st.columns(4)
    for c, key in enumerate(row):
        active = view.pending_symbol == key
        with cols[c]:
            st.button(
                key,
                key=f"cp_key_{r}_{c}",
                on_click=calc.press,
                args=(key,),
                type="primary" if active else "secondary",
                use_container_width=True,
            )


# ----- History -----
if calc.history_visible:
    st.subheader("History")
    entries = session.history.entries
    if not entries:
        st.caption("No calculations yet.")
    for entry in entries:
        left, right = st.columns([3, 1])
        with left:
            st.markdown(
                '<div class="cp-history-item">'
                f'<div class="cp-history-time">{format_time(entry.timestamp)} · {html.escape(entry.expression)}</div>'
                f'<div class="cp-history-result">{html.escape(entry.result)}</div>'
                "</div>",
                unsafe_allow_html=True,
            )
        with right:
            st.button("Use", key=f"cp_hist_{entry.id}", on_click=calc.select_history_item, args=(entry,))
    if entries:
        st.button("Clear history", on_click=calc.clear_history)
