import os

import pandas as pd
import requests
import streamlit as st

# MUST be the first Streamlit command
st.set_page_config(page_title="StockSight", layout="wide")

# Get API base URL - use environment variable or default to localhost
API = os.environ.get("API_BASE", "http://localhost:8080")

TIME_RANGES = {
    "Intraday (today)": "daily",
    "1 Week": "weekly",
    "1 Month": "monthly",
    "1 Year": "yearly",
    "5 Years": "5year",
}

st.title("StockSight")

try:
    health = requests.get(f"{API}/health", timeout=2).json()
    st.success(f"✅ Core API connected ({health.get('api_keys', 0)} API key(s) loaded)")
except requests.RequestException:
    st.error(f"❌ Cannot reach Core API at {API}")

st.markdown("---")

col1, col2, col3 = st.columns([2, 2, 1])
with col1:
    symbol = st.text_input("Stock symbol", "IBM", help="Examples: IBM, AAPL, MSFT")
with col2:
    label = st.selectbox("Time range", list(TIME_RANGES))
with col3:
    st.write("")
    fetch_clicked = st.button("Fetch Data", disabled=st.session_state.get("fetching", False))

if fetch_clicked:
    symbol = symbol.strip().upper()
    if not symbol:
        st.error("Please enter a stock symbol.")
        st.session_state.pop("stock", None)
    else:
        st.session_state["fetching"] = True
        with st.spinner("Fetching data..."):
            try:
                res = requests.post(
                    f"{API}/v1/stock",
                    json={"symbol": symbol, "time_frame": TIME_RANGES[label]},
                    timeout=120,
                )
                st.session_state["stock"] = {"symbol": symbol, **res.json()}
            except requests.RequestException as e:
                st.session_state["stock"] = {"symbol": symbol, "success": False, "message": str(e)}
            finally:
                st.session_state["fetching"] = False

data = st.session_state.get("stock")
if data:
    if not data.get("success"):
        st.error(data.get("message") or "Failed to fetch stock data. Please try again.")
    else:
        st.success(f"Data fetched successfully for {data['symbol']}!")
        chart = data["chartData"]
        if chart["labels"]:
            df = pd.DataFrame({"time": pd.to_datetime(chart["labels"], utc=True), "close": chart["close"]})
            color = "#d62728" if chart["isDeclining"] else "#2ca02c"
            st.line_chart(df.set_index("time")["close"], color=color)
        else:
            st.info("No chart data available for the selected time range.")

        metrics = data["keyMetrics"]
        m1, m2, m3, m4, m5 = st.columns(5)
        m1.metric("Open", f"{metrics['open']:.2f}")
        m2.metric("High", f"{metrics['high']:.2f}")
        m3.metric("Low", f"{metrics['low']:.2f}")
        m4.metric("Close", f"{metrics['close']:.2f}")
        m5.metric("Volume", f"{metrics['volume']:,}")
