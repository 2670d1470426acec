"""Chart generation using Plotly."""

import pandas as pd
import plotly.graph_objects as go

THEME = {
    "text": "#e8eaed",
    "text_secondary": "#9aa0a6",
    "grid": "rgba(30, 33, 36, 0.8)",
    "cyan": "#00d4ff",
    "amber": "#ffab00",
    "green": "#00e676",
}

SECONDS_PER_DAY = 86400


def apply_dark_layout(fig: go.Figure, title: str, x_title: str, y_title: str, showlegend: bool = True) -> None:
    """Apply the dark theme layout shared by every chart."""
    fig.update_layout(
        title={"text": title, "x": 0, "xanchor": "left", "font": {"size": 11, "color": THEME["text_secondary"]}},
        xaxis_title=x_title,
        yaxis_title=y_title,
        hovermode="x unified",
        template="plotly_dark",
        height=340,
        margin=dict(l=50, r=20, t=40, b=40),
        showlegend=showlegend,
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="left", x=0),
        font={"color": THEME["text"], "size": 11},
        xaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
        yaxis=dict(gridcolor=THEME["grid"], zerolinecolor=THEME["grid"]),
    )


def _days(frame: pd.DataFrame):
    start = frame.index[0] if len(frame.index) else 0
    return [(t - start) / SECONDS_PER_DAY for t in frame.index]


def create_supply_chart(frame: pd.DataFrame) -> go.Figure:
    """Total supply against every lock's individual balance."""
    days = _days(frame)
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=days, y=frame["total_supply"].astype(float), name="Total supply",
        line=dict(color=THEME["cyan"], width=2),
    ))
    for column in frame.columns:
        if column.startswith("lock_"):
            fig.add_trace(go.Scatter(
                x=days, y=frame[column].astype(float), name=column.replace("_", " "),
                line=dict(width=1, dash="dot"),
            ))
    apply_dark_layout(fig, "VOTING WEIGHT", "Days", "Weight")
    return fig


def create_votes_chart(frame: pd.DataFrame) -> go.Figure:
    """Stacked delegated votes per delegatee."""
    days = _days(frame)
    palette = [THEME["cyan"], THEME["amber"], THEME["green"]]
    fig = go.Figure()
    columns = [c for c in frame.columns if c.startswith("votes_")]
    for i, column in enumerate(columns):
        fig.add_trace(go.Scatter(
            x=days, y=frame[column].astype(float), name=column[len("votes_"):],
            stackgroup="votes", mode="lines",
            line=dict(color=palette[i % len(palette)], width=1),
        ))
    apply_dark_layout(fig, "DELEGATED VOTES", "Days", "Votes")
    return fig
