"""
Streamlit Reviews Screen
Vendor Review Aggregator

Sections:
  1. Sidebar: vendor and sort selection
  2. Overall rating KPIs
  3. Rating breakdown chart
  4. Filter buttons (counts from unfiltered statistics)
  5. Accumulated review list with "load more"
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import streamlit as st
import pandas as pd
import plotly.express as px
from functools import partial

from agents.sources import build_sources
from agents.statistics import filter_options, rating_breakdown
from config.settings import settings
from utils.accumulator import (
    ReviewAccumulator, LoadStatus,
    VIEW_LOADING_MORE, VIEW_NO_MATCHES, VIEW_REACHED_END,
)
from utils.pipeline import get_filtered_aggregate, get_latest_reviews


# ─── Page Config ─────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Rating & Reviews",
    page_icon="⭐",
    layout="wide",
)


# ─── State Management ────────────────────────────────────────────────────────

def fetch_page(vendor_id, sort_by, sort_order, rating_filter, page, limit):
    directory, source = build_sources(settings.REVIEW_BACKEND)
    return get_filtered_aggregate(
        vendor_id, rating_filter, page, limit, sort_by, sort_order,
        directory=directory, source=source,
    )


def get_screen(vendor_id: str, sort_by: str, sort_order: str) -> ReviewAccumulator:
    """One accumulator per (vendor, sort) for the lifetime of the browser session."""
    key = (vendor_id, sort_by, sort_order)
    if st.session_state.get("screen_key") != key:
        screen = ReviewAccumulator(
            partial(fetch_page, vendor_id, sort_by, sort_order),
            limit=settings.DEFAULT_PAGE_LIMIT,
        )
        screen.open()
        st.session_state.screen = screen
        st.session_state.screen_key = key
    return st.session_state.screen


# ─── Sidebar ─────────────────────────────────────────────────────────────────

def render_sidebar():
    with st.sidebar:
        st.title("⭐ Reviews")
        vendor_id = st.text_input("Vendor ID", value="vendor-demo")
        sort_by = st.selectbox("Sort by", ["createdAt", "rating", "helpful"])
        sort_order = st.radio("Order", ["desc", "asc"], horizontal=True)
        st.caption(f"Backend: {settings.REVIEW_BACKEND}")
    return vendor_id, sort_by, sort_order


# ─── Sections ────────────────────────────────────────────────────────────────

def render_kpis(screen: ReviewAccumulator):
    stats = screen.statistics
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Rating", f"{stats.average_rating:.1f}" if stats else "—")
    with col2:
        st.metric("Reviews", stats.total_reviews if stats else 0)
    with col3:
        st.metric("Customers", stats.total_customers if stats else 0)
    with col4:
        st.metric("Performance", stats.performance_tier if stats else "No Reviews")


def render_breakdown(screen: ReviewAccumulator):
    if screen.statistics is None:
        return
    df = pd.DataFrame(rating_breakdown(screen.statistics))
    df["label"] = df["stars"].astype(str) + " ★"
    fig = px.bar(
        df,
        x="percentage",
        y="label",
        orientation="h",
        text="count",
        labels={"percentage": "% of reviews", "label": ""},
        color_discrete_sequence=["#FF8C00"],
    )
    fig.update_layout(height=260, margin=dict(l=0, r=0, t=10, b=0))
    fig.update_xaxes(range=[0, 100])
    st.plotly_chart(fig, use_container_width=True)


def render_filters(screen: ReviewAccumulator):
    if screen.statistics is None:
        return
    options = filter_options(screen.statistics)
    cols = st.columns(max(1, len(options)))
    for col, option in zip(cols, options):
        active = screen.state.rating_filter == option["key"]
        with col:
            if st.button(
                f"{option['label']} ({option['count']})",
                key=f"filter_{option['key']}",
                type="primary" if active else "secondary",
                use_container_width=True,
            ) and not active:
                screen.change_filter(option["key"])
                st.rerun()


def render_reviews(screen: ReviewAccumulator):
    if screen.items:
        df = pd.DataFrame([{
            "Date": r.review.created_at.strftime("%Y-%m-%d"),
            "Rating": "★" * r.rating,
            "Service": r.listing.name,
            "Category": r.listing.category,
            "Customer": r.review.reviewer_name or "Anonymous",
            "Comment": r.review.comment or "No comment provided",
            "Helpful": r.review.helpful_count,
        } for r in screen.items])
        st.dataframe(df, hide_index=True, use_container_width=True)

    view = screen.view_state
    if screen.state.status is LoadStatus.ERROR:
        st.warning(f"Loading more reviews failed: {screen.state.last_error}")
        if st.button("Retry"):
            screen.retry()
            st.rerun()
    elif view == VIEW_LOADING_MORE:
        st.caption("Loading more reviews...")
    elif view == VIEW_REACHED_END:
        st.caption("You've reached the end of reviews")
    elif view == VIEW_NO_MATCHES:
        st.info("No reviews match this filter yet.")
    elif st.button("Load more"):
        screen.load_more()
        st.rerun()


# ─── Main ────────────────────────────────────────────────────────────────────

def main():
    vendor_id, sort_by, sort_order = render_sidebar()
    if not vendor_id:
        st.info("Enter a vendor id in the sidebar.")
        return

    screen = get_screen(vendor_id, sort_by, sort_order)

    st.title("Rating & Reviews")
    render_kpis(screen)
    st.divider()

    left, right = st.columns([1, 2])
    with left:
        st.subheader("Rating breakdown")
        render_breakdown(screen)
        st.subheader("Latest")
        directory, source = build_sources(settings.REVIEW_BACKEND)
        for r in get_latest_reviews(vendor_id, directory=directory, source=source).reviews:
            st.caption(f"{'★' * r.rating}  {r.listing.name}: {r.review.comment or 'No comment provided'}")
    with right:
        render_filters(screen)
        render_reviews(screen)


if __name__ == "__main__":
    main()
