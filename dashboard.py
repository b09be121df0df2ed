# dashboard.py: summary figures and expense breakdown for the dashboard screen

from typing import Dict, Iterable, List

import pandas as pd
import plotly.express as px
import streamlit as st

from models import Transaction

# Pie slice colours, cycled when there are more categories than colours
COLORS = ["#0088FE", "#00C49F", "#FFBB28", "#FF8042"]


def _prep(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Builds the frame the aggregates are computed from.
    """
    df = pd.DataFrame(
        [{"Date": t.date, "Amount": t.amount, "Category": t.category} for t in transactions],
        columns=["Date", "Amount", "Category"],
    )
    if df.empty:
        return df

    df["Amount"] = pd.to_numeric(df["Amount"], errors="coerce").fillna(0.0)
    df["Category"] = df["Category"].fillna("Other").replace("", "Other")
    # Whole cents, so every aggregate is summed from the same rounded values
    df["Cents"] = (df["Amount"] * 100).round().astype("int64")
    df["Income"] = df["Cents"].where(df["Cents"] > 0, 0)
    df["Expense"] = df["Cents"].where(df["Cents"] < 0, 0)
    return df


def summarize(transactions: Iterable[Transaction]) -> Dict[str, float]:
    """
    Income (positive amounts), expenses (negative amounts, kept negative)
    and their sum, rounded to cents.
    """
    df = _prep(transactions)
    if df.empty:
        return {"income": 0.0, "expenses": 0.0, "balance": 0.0}

    income = int(df["Income"].sum())
    expenses = int(df["Expense"].sum())
    return {
        "income": income / 100,
        "expenses": expenses / 100,
        "balance": (income + expenses) / 100,
    }


def category_breakdown(transactions: Iterable[Transaction]) -> List[dict]:
    """
    Absolute expense totals per category, in the order categories first
    appear in the collection.
    """
    df = _prep(transactions)
    if df.empty:
        return []

    spend = df[df["Cents"] < 0]
    by_cat = spend.groupby("Category", sort=False)["Cents"].sum().abs()
    return [{"name": name, "value": int(value) / 100} for name, value in by_cat.items()]


def cat_spend(category_data: List[dict]):
    """
    Donut chart of spending by category.
    """
    by_cat = pd.DataFrame(category_data, columns=["name", "value"])
    fig = px.pie(
        by_cat,
        values="value",
        names="name",
        hole=0.4,
        title="Expense Breakdown",
        color_discrete_sequence=COLORS,
    )
    fig.update_traces(textposition="inside", textinfo="percent")
    fig.update_layout(height=350, legend_title_text="Category")
    return fig


def format_money(value: float) -> str:
    return f"${value:,.2f}"


def _kpis(summary: Dict[str, float]):
    """
    Income, expenses and balance cards.
    """
    col1, col2, col3 = st.columns(3)
    col1.metric("💰 Income", format_money(summary["income"]))
    col2.metric("💸 Expenses", format_money(abs(summary["expenses"])))
    col3.metric("🧾 Balance", format_money(summary["balance"]))
