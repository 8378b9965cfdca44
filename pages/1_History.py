from __future__ import annotations

import pandas as pd
import streamlit as st

from calcpad.session import build_session
from calcpad.theme import set_theme


if "cp_session" not in st.session_state:
    st.session_state.cp_session = build_session()

session = st.session_state.cp_session

set_theme(session.theme.colors, page_title="Calcpad History")

st.title("Calculation history")

records = session.history.to_records()
if not records:
    st.info("No calculations yet. Results appear here after you press =.")
    st.stop()

df = pd.DataFrame.from_records(records, columns=["timestamp", "expression", "result", "id"])
df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

query = st.text_input("Filter", placeholder="e.g. ÷ or 90")
if query:
    mask = df["expression"].str.contains(query, regex=False) | df["result"].str.contains(query, regex=False)
    df = df[mask]

st.dataframe(df.drop(columns=["id"]), use_container_width=True, hide_index=True)
st.caption(f"{len(df)} of {len(records)} calculations")

st.download_button(
    "Download CSV",
    data=df.to_csv(index=False).encode("utf-8"),
    file_name="calculator_history.csv",
    mime="text/csv",
)

if st.button("Clear history"):
    session.calculator.clear_history()
    st.rerun()
