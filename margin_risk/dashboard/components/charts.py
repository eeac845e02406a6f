"""Reusable Plotly chart components."""

import pandas as pd
import plotly.graph_objects as go

from margin_risk.stress.thresholds import LiquidationThresholds


def health_curve_chart(
    df: pd.DataFrame,
    thresholds: LiquidationThresholds | None = None,
    current_price: float | None = None,
    title: str = "Account Health vs Price",
) -> go.Figure:
    """Create a health curve chart with the liquidation band marked.

    Args:
        df: DataFrame with columns: price, health, solvent.
        thresholds: If provided, marks the lower/upper liquidation prices.
        current_price: If provided, marks the current price.
        title: Chart title.
    """
    fig = go.Figure()

    fig.add_trace(
        go.Scatter(
            x=df["price"],
            y=df["health"],
            mode="lines",
            name="Health",
            line=dict(color="#3b82f6", width=2),
            hovertemplate="Price: %{x:.6g}<br>Health: %{y:.3f}<extra></extra>",
        )
    )

    # Liquidation line at health = 1.0
    fig.add_hline(
        y=1.0,
        line_dash="dash",
        line_color="#ef4444",
        annotation_text="Liquidation (health=1.0)",
    )

    if thresholds is not None:
        for label, price in (("Lower", thresholds.lower), ("Upper", thresholds.upper)):
            price = float(price)
            if df["price"].min() <= price <= df["price"].max():
                fig.add_vline(
                    x=price,
                    line_dash="dot",
                    line_color="#f59e0b",
                    annotation_text=f"{label}: {price:.6g}",
                )

    if current_price is not None:
        fig.add_vline(
            x=current_price,
            line_dash="dash",
            line_color="#6b7280",
            annotation_text=f"Current: {current_price:.6g}",
        )

    fig.update_layout(
        title=title,
        xaxis_title="Price (token1 per token0)",
        yaxis_title="Health",
        xaxis_type="log",
        hovermode="x unified",
        template="plotly_dark",
        height=450,
    )

    return fig
