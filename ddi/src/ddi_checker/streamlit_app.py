"""Streamlit frontend for the drug interaction checker.

A two-field form: enter drug A and drug B, press the button, and the page
POSTs them to the FastAPI backend (app.py) and shows the summary with links
to both DailyMed labels.

Run locally with:
    streamlit run src/ddi_checker/streamlit_app.py

The FastAPI backend must be running at DDI_BACKEND_URL.
"""

import requests
import streamlit as st

from ddi_checker.config import DDI_BACKEND_URL

st.set_page_config(
    page_title="Drug Interaction Checker",
    page_icon="\U0001f48a",
)

st.title("Drug Interaction Checker")
st.caption("Summarizes the Drug Interactions sections of two FDA labels.")

col_a, col_b = st.columns(2)
drug_a = col_a.text_input("Drug A", placeholder="amiodarone")
drug_b = col_b.text_input("Drug B", placeholder="simvastatin")

if st.button("Check interaction", disabled=not (drug_a and drug_b)):
    with st.spinner("Fetching labels..."):
        try:
            resp = requests.post(
                f"{DDI_BACKEND_URL}/api/ddi",
                json={"drugA": drug_a, "drugB": drug_b},
                timeout=120,
            )
        except requests.exceptions.ConnectionError:
            data = {
                "error": "Could not connect to the backend. "
                f"Is the FastAPI server running at {DDI_BACKEND_URL}?"
            }
        except requests.exceptions.Timeout:
            data = {"error": "The request timed out. DailyMed may be slow right now."}
        except requests.exceptions.RequestException as e:
            data = {"error": f"Request to the backend failed: {e}"}
        else:
            try:
                data = resp.json()
            except ValueError:
                data = {
                    "error": "Backend returned a non-JSON response "
                    f"(HTTP {resp.status_code})."
                }

    if "error" in data:
        st.error(data["error"])
    else:
        st.subheader("Summary")
        st.write(data["summary"])
        if data.get("mechanism"):
            st.markdown(f"**Mechanism:** {data['mechanism']}")
        if data.get("severity"):
            st.markdown(f"**Severity:** {data['severity']}")
        st.subheader("Sources")
        for label, link in zip(("Drug A label", "Drug B label"), data["sources"]):
            st.markdown(f"- [{label}]({link})")
        st.caption(
            "This information is for reference only and does not replace "
            "clinical judgment."
        )
