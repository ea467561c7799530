"""System Statistics - membership and savings figures for managers and admins."""

import sys
from pathlib import Path

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

sys.path.insert(0, str(Path(__file__).parent.parent))
from streamlit_app import require_session, run_async

from backoffice.api import ApiError
from backoffice.formatting import format_currency
from backoffice.models import WORK_DOMAINS
from backoffice.roles import STATISTICS
from backoffice.statistics import load_statistics, pie_slices

STATS_KEY = "backoffice.view.statistics"

DOMAIN_COLORS = {
    "ACADEMIC": "#3b82f6",
    "ADMINISTRATION": "#10b981",
    "CONTRACT": "#f59e0b",
    "OTHER": "#8b5cf6",
}


def domain_pie(counts: dict[str, int]) -> go.Figure:
    """Work-domain pie drawn from precomputed slice angles."""
    slices = [piece for piece in pie_slices(counts) if piece.sweep > 0]
    fig = go.Figure()
    for piece in slices:
        fig.add_trace(
            go.Barpolar(
                r=[1],
                theta=[piece.start_angle + piece.sweep / 2],
                width=[piece.sweep],
                name=f"{WORK_DOMAINS[piece.label]} ({piece.percent:.1f}%)",
                marker_color=DOMAIN_COLORS.get(piece.label),
                hovertemplate=f"{WORK_DOMAINS[piece.label]}: {piece.value} members<extra></extra>",
            )
        )
    fig.update_layout(
        polar=dict(
            radialaxis=dict(visible=False, range=[0, 1]),
            angularaxis=dict(visible=False, direction="clockwise", rotation=0),
            bargap=0,
        ),
        height=380,
        margin=dict(l=20, r=20, t=30, b=20),
        legend=dict(orientation="h"),
    )
    return fig


st.set_page_config(page_title="System Statistics", layout="wide")
api = require_session(STATISTICS)

st.title("📊 System Statistics")
st.caption("Membership and savings overview")

if st.button("🔄 Refresh"):
    st.session_state.pop(STATS_KEY, None)

if STATS_KEY not in st.session_state:
    with st.spinner("Loading statistics..."):
        try:
            st.session_state[STATS_KEY] = run_async(load_statistics(api))
        except ApiError as exc:
            st.error(f"Failed to load statistics: {exc.message}")
            st.stop()

stats = st.session_state[STATS_KEY]
members = stats.members

col1, col2, col3, col4 = st.columns(4)
with col1:
    st.metric("Total Members", f"{members.total_members:,}")
with col2:
    st.metric("Active Members", f"{members.active_members:,}")
with col3:
    st.metric("Inactive Members", f"{members.inactive_members:,}")
with col4:
    st.metric("New in 7 Days", f"{stats.recent_registrations:,}")

st.divider()
left, right = st.columns(2)

with left:
    st.subheader("Members by Work Domain")
    if sum(stats.members_by_domain.values()):
        st.plotly_chart(domain_pie(stats.members_by_domain), use_container_width=True)
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Domain": WORK_DOMAINS[piece.label],
                        "Members": piece.value,
                        "Share": f"{piece.percent:.1f}%",
                    }
                    for piece in pie_slices(stats.members_by_domain)
                ]
            ),
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.info("No members registered yet")

with right:
    st.subheader("Savings Accounts")
    accounts = stats.accounts
    if accounts is None:
        st.warning("Account statistics are unavailable")
    else:
        c1, c2 = st.columns(2)
        c1.metric("Total Balance", format_currency(accounts.total_balance))
        c2.metric("Average Balance", format_currency(accounts.average_balance))

        fig = go.Figure(
            data=[
                go.Bar(
                    x=["Formal", "Informal", "Active", "Inactive"],
                    y=[
                        accounts.formal_accounts,
                        accounts.informal_accounts,
                        accounts.active_accounts,
                        accounts.inactive_accounts,
                    ],
                    marker_color=["#3b82f6", "#8b5cf6", "#10b981", "#ef4444"],
                )
            ]
        )
        fig.update_layout(
            height=340,
            yaxis_title="Accounts",
            margin=dict(l=20, r=20, t=30, b=20),
        )
        st.plotly_chart(fig, use_container_width=True)
        st.caption(f"{accounts.total_accounts:,} accounts in total")
