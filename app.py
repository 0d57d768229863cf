import logging
from contextlib import contextmanager
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from fcab.charts import bus_mileage_chart, vendor_spend_chart
from fcab.data import format_currency_columns, format_inr, prepare_context
from fcab.filters import normalize_filters
from fcab.metrics_approvals import compute_approvals
from fcab.metrics_overview import compute_overview
from fcab.state import FleetState

logger = logging.getLogger(__name__)


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .card-actions {font-size: 0.9rem;color: #0f766e;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selected_buses: List[str], selected_stations: List[str], date_from: Optional[date], date_to: Optional[date]) -> str:
    bus_chip = "Buses: All" if not selected_buses else f"Buses: {', '.join(selected_buses)}"
    station_chip = "Stations: All" if not selected_stations else f"Stations: {', '.join(selected_stations)}"
    if date_from or date_to:
        date_chip = f"Dates: {date_from or '…'} – {date_to or '…'}"
    else:
        date_chip = "Dates: All"
    return "".join([f"<span class='chip'>{txt}</span>" for txt in [bus_chip, station_chip, date_chip]])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def status_badge(status: str) -> str:
    return {"pending": "🟡 pending", "approved": "🟢 approved", "paid": "🟢 paid", "rejected": "🔴 rejected"}.get(status, status)


# ---------- UI setup ----------
st.set_page_config(page_title="Fuel, Costs & Billing", layout="wide")
inject_base_styles()
st.title("Fuel, Costs & Billing")
st.caption("Every rupee justified, every drop accountable.")

# One FleetState per browser session; every session writes to the same store file.
if "fleet_state" not in st.session_state:
    st.session_state["fleet_state"] = FleetState.load()
state: FleetState = st.session_state["fleet_state"]

# ----- Sidebar: navigation + filters -----
base_ctx = prepare_context(None, state)
with st.sidebar:
    st.markdown("### Navigate")
    nav_choice = st.radio("Navigate", ["Dashboard", "Approvals"], index=0)

    st.markdown("---")
    st.markdown("### Quick filters")
    selected_buses = st.multiselect("Buses", options=base_ctx["buses"], default=[])
    selected_stations = st.multiselect("Stations", options=base_ctx["stations"], default=[])
    date_cols = st.columns(2)
    date_from = date_cols[0].date_input("From", value=None)
    date_to = date_cols[1].date_input("To", value=None)

    st.markdown("---")
    with st.expander("Advanced settings", expanded=False):
        recent_limit = st.slider("Recent fuel logs", min_value=4, max_value=30, value=8, step=1)
        table_limit = st.slider("Claims / invoices rows", min_value=3, max_value=30, value=6, step=1)
        st.subheader("Alert thresholds")
        baseline_fallback = st.number_input("Fallback baseline (km/l)", min_value=0.0, value=4.5, step=0.5)
        drop_ratio = st.slider("Alert below baseline ×", 0.5, 1.0, 0.8, 0.05)
        high_ratio = st.slider("High severity below baseline ×", 0.2, 0.9, 0.6, 0.05)

filters = normalize_filters(
    {
        "selected_buses": selected_buses,
        "selected_stations": selected_stations,
        "date_from": date_from,
        "date_to": date_to,
        "recent_limit": recent_limit,
        "table_limit": table_limit,
        "thresholds": {
            "baseline_fallback": baseline_fallback,
            "drop_ratio": drop_ratio,
            "high_ratio": high_ratio,
        },
    }
)
ctx = prepare_context(filters, state)
filter_summary_html = format_filter_summary(selected_buses, selected_stations, date_from, date_to)


# ----- Forms -----
def render_fuel_log_form():
    with st.form("fuel_log_form", clear_on_submit=True):
        cols = st.columns(2)
        bus_id = cols[0].text_input("Bus ID", "BUS-101")
        driver = cols[1].text_input("Driver", "Amit")
        station = cols[0].text_input("Station", "HPCL")
        liters = cols[1].number_input("Liters", value=50.0, step=1.0)
        price = cols[0].number_input("Price/L", value=99.5, step=0.1)
        odometer = cols[1].number_input("Odometer", value=120000.0, step=10.0)
        when = cols[0].date_input("Date", value=date.today())
        if st.form_submit_button("Save"):
            entry = state.add_fuel_log(
                {
                    "bus_id": bus_id,
                    "driver": driver,
                    "station": station,
                    "liters": liters,
                    "price_per_liter": price,
                    "odometer": odometer,
                    "date": when,
                }
            )
            logger.info("fuel log %s added for %s", entry.id, entry.bus_id)
            st.rerun()


def render_expense_form():
    with st.form("expense_form", clear_on_submit=True):
        cols = st.columns(2)
        driver = cols[0].text_input("Driver", "Amit")
        amount = cols[1].number_input("Amount (₹)", value=500.0, step=50.0)
        category = cols[0].text_input("Category", "Meals")
        when = cols[1].date_input("Date", value=date.today())
        description = st.text_input("Description", "Lunch on route")
        if st.form_submit_button("Save"):
            state.add_expense(
                {"driver": driver, "amount": amount, "category": category, "description": description, "date": when}
            )
            st.rerun()


def render_invoice_form():
    with st.form("invoice_form", clear_on_submit=True):
        cols = st.columns(2)
        vendor = cols[0].text_input("Vendor", "HPCL")
        invoice_number = cols[1].text_input("Invoice #", "INV-001")
        amount = cols[0].number_input("Amount (₹)", value=12000.0, step=500.0)
        due = cols[1].date_input("Due Date", value=date.today())
        if st.form_submit_button("Save"):
            state.add_invoice({"vendor": vendor, "invoice_number": invoice_number, "amount": amount, "due_date": due})
            st.rerun()


def render_alerts(alerts_list: List[Dict[str, Any]]):
    if not alerts_list:
        st.success("No alerts. All good.")
        return
    for alert in alerts_list:
        when = pd.to_datetime(alert["date"], utc=True, errors="coerce")
        stamp = when.strftime("%Y-%m-%d %H:%M") if pd.notna(when) else alert["date"]
        text = f"**{alert['message']}**  \n{stamp}"
        if alert["severity"] == "high":
            st.error(text)
        else:
            st.warning(text)


# ----- Page renderers -----
def render_dashboard_page():
    payload = compute_overview(filters, ctx)
    render_page_header("Dashboard", "Home / Dashboard", filter_summary_html, export_df=ctx["filtered_fuel_logs"], export_name="fuel-logs.csv")

    actions = st.columns(3)
    with actions[0].expander("Log Refuel"):
        render_fuel_log_form()
    with actions[1].expander("New Expense"):
        render_expense_form()
    with actions[2].expander("New Invoice"):
        render_invoice_form()

    kpis = payload["kpis"]
    with card("KPI Tiles"):
        cols = st.columns(4)
        cols[0].metric("Total Fuel Spend", format_inr(kpis["total_fuel_spend"]))
        cols[1].metric("Avg Cost / km", format_inr(kpis["cost_per_km"], 2))
        cols[2].metric("Avg Mileage", f"{kpis['avg_mileage']:.2f} km/l")
        cols[3].metric("Pending Approvals", f"{kpis['pending_approvals']}")

    chart_cols = st.columns([4, 3])
    with chart_cols[0]:
        with card("Mileage per Bus"):
            chart = bus_mileage_chart(payload["bus_mileage"])
            if chart is None:
                st.info("Not enough refuels to compute mileage.")
            else:
                st.altair_chart(chart, use_container_width=True)
    with chart_cols[1]:
        with card("Vendor Spend"):
            chart = vendor_spend_chart(payload["vendor_spend"])
            if chart is None:
                st.info("No fuel spend recorded.")
            else:
                st.altair_chart(chart, use_container_width=True)

    table_cols = st.columns([4, 3])
    with table_cols[0]:
        with card("Recent Fuel Logs"):
            recent = pd.DataFrame(payload["recent_fuel_logs"])
            if recent.empty:
                st.info("No fuel logs yet.")
            else:
                recent = recent.drop(columns=["id"])
                recent["date"] = pd.to_datetime(recent["date"], utc=True, errors="coerce").dt.strftime("%Y-%m-%d")
                st.dataframe(format_currency_columns(recent, ["total_cost"]), use_container_width=True, hide_index=True)
    with table_cols[1]:
        with card("Alerts", actions=str(len(payload["alerts"]))):
            render_alerts(payload["alerts"])

    pending = payload["pending_counts"]
    tab_expenses, tab_invoices = st.tabs(["Expense Claims", "Vendor Invoices"])
    with tab_expenses:
        with card("Expense Claims", actions=f"{pending.get('expenses', 0)} pending"):
            rows = pd.DataFrame(payload["expenses"])
            if rows.empty:
                st.info("No expenses yet.")
            else:
                rows["status"] = rows["status"].map(status_badge)
                st.dataframe(rows.drop(columns=["id"]), use_container_width=True, hide_index=True)
    with tab_invoices:
        with card("Vendor Invoices", actions=f"{pending.get('invoices', 0)} pending"):
            rows = pd.DataFrame(payload["invoices"])
            if rows.empty:
                st.info("No invoices yet.")
            else:
                rows["status"] = rows["status"].map(status_badge)
                st.dataframe(rows.drop(columns=["id"]), use_container_width=True, hide_index=True)
    st.caption("Data is stored locally for now.")


def render_approvals_page():
    payload = compute_approvals(ctx)
    render_page_header("Approvals", "Home / Approvals", filter_summary_html)
    pending = payload["pending_counts"]
    cols = st.columns(2)
    with cols[0]:
        with card("Expense Claims", actions=f"{pending['expenses']} pending"):
            if not payload["expenses"]:
                st.info("No expenses yet. Add from the Dashboard.")
            for row in payload["expenses"]:
                line = st.columns([4, 2, 1, 1])
                line[0].markdown(f"**{row['driver']}** · {row['category']}  \n{format_inr(row['amount'])}")
                line[1].markdown(status_badge(row["status"]))
                if line[2].button("Approve", key=f"exp-approve-{row['id']}"):
                    state.update_expense_status(row["id"], "approved")
                    st.rerun()
                if line[3].button("Reject", key=f"exp-reject-{row['id']}"):
                    state.update_expense_status(row["id"], "rejected")
                    st.rerun()
    with cols[1]:
        with card("Vendor Invoices", actions=f"{pending['invoices']} pending"):
            if not payload["invoices"]:
                st.info("No invoices yet. Add from the Dashboard.")
            for row in payload["invoices"]:
                line = st.columns([4, 2, 1, 1])
                line[0].markdown(f"**{row['vendor']}** · {row['invoice_number']}  \n{format_inr(row['amount'])}")
                line[1].markdown(status_badge(row["status"]))
                if line[2].button("Mark Paid", key=f"inv-paid-{row['id']}"):
                    state.update_invoice_status(row["id"], "paid")
                    st.rerun()
                if line[3].button("Reject", key=f"inv-reject-{row['id']}"):
                    state.update_invoice_status(row["id"], "rejected")
                    st.rerun()
    st.caption("Managed locally. Connect a database to persist across sessions.")


if nav_choice == "Dashboard":
    render_dashboard_page()
else:
    render_approvals_page()
