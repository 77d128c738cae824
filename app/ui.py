# Run from project root: streamlit run app/ui.py
# UI talks to backend API (POST /api/chat). The backend is stateless; history is kept only for display.

import os

import requests
import streamlit as st

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")


def render_citations(citations: list[dict]) -> None:
    """Numbered source list under an answer."""
    if not citations:
        return
    with st.expander(f"Källor ({len(citations)})"):
        for i, c in enumerate(citations, start=1):
            label = c.get("source_file") or "Okänd källa"
            url = c.get("source_url") or ""
            heading = f"[{label}]({url})" if url else label
            meta = " · ".join(x for x in (c.get("date") or "", c.get("time_stamp") or "") if x)
            st.markdown(f"**{i}.** {heading}" + (f"  \n_{meta}_" if meta else ""))
            st.caption(f"“{c.get('citation', '')}”")


def render_message(msg: dict) -> None:
    if msg.get("error"):
        st.error(msg["content"])
    else:
        st.markdown(msg["content"])
    render_citations(msg.get("citations") or [])


st.title("RF-chatt")
st.caption("Fråga om debatter i regionfullmäktige i Region Östergötland.")

if "messages" not in st.session_state:
    st.session_state.messages = []
if st.button("Ny chatt", key="new_chat"):
    st.session_state.messages = []
    st.rerun()

# Show previous messages (local display only)
for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        render_message(msg)

# If we just submitted a query, show it and then show a spinner while waiting for response
if st.session_state.get("pending_query"):
    prompt = st.session_state.pending_query
    with st.chat_message("assistant"):
        reply: dict = {"role": "assistant", "content": "", "citations": []}
        with st.spinner("Agenten skriver…"):
            try:
                r = requests.post(f"{API_BASE}/api/chat", json={"message": prompt}, timeout=120)
                try:
                    data = r.json()
                except ValueError:
                    data = {}
                if r.ok:
                    reply["content"] = data.get("reply") or data.get("output_text") or "Inget svar från agenten"
                    reply["citations"] = data.get("citations") or []
                else:
                    reply["content"] = data.get("message") or f"Fel: {r.status_code}"
                    reply["error"] = True
            except requests.RequestException as e:
                reply["content"] = f"Kunde inte nå servern: {e}"
                reply["error"] = True
        render_message(reply)
        st.session_state.messages.append(reply)
    del st.session_state["pending_query"]
    st.rerun()

# New message from user: show it immediately, then rerun so the spinner appears
if prompt := st.chat_input("Skriv din fråga…"):
    st.session_state.messages.append({"role": "user", "content": prompt})
    st.session_state.pending_query = prompt
    st.rerun()
