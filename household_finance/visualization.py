"""Plotly figure builders for the finance dashboard.

Each function accepts the tabular output of :mod:`household_finance.aggregation`
and returns a `plotly.graph_objects.Figure`. Displaying the figure is left to
whichever UI hosts the dashboard.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .formatting import format_currency


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_monthly_trend_chart(totals: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Generate an income vs. expense line chart.

    Parameters
    ----------
    totals : pandas.DataFrame
        Output of :func:`~household_finance.aggregation.monthly_totals_frame`
        (columns ``Month``, ``Income``, ``Expense``).
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Line chart with one trace per series.
    """
    if totals.empty:
        return _empty_figure()
    long_df = totals.melt(
        id_vars="Month",
        value_vars=["Income", "Expense"],
        var_name="Series",
        value_name="Amount",
    )
    long_df["Label"] = long_df["Amount"].map(format_currency)
    fig = px.line(
        long_df,
        x="Month",
        y="Amount",
        color="Series",
        markers=True,
        hover_data={"Label": True, "Amount": False},
        color_discrete_map={"Income": "#16a34a", "Expense": "#dc2626"},
    )
    fig.update_layout(
        title=title or "Income and expenses by month",
        xaxis_title="Month",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(breakdown: pd.Series, title: str | None = None) -> go.Figure:
    """Generate a pie chart of spending per category.

    Parameters
    ----------
    breakdown : pandas.Series
        Output of :func:`~household_finance.aggregation.category_breakdown`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart.
    """
    if breakdown.empty:
        return _empty_figure()
    df = breakdown.reset_index()
    df.columns = ["Category", "Value"]
    fig = px.pie(df, names="Category", values="Value")
    fig.update_layout(title=title or "Spending by category")
    return fig
