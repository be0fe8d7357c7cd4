from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Sequence

import plotly.graph_objects as go

from questions import pillar_color

GLOBAL_COLOR = "#2563EB"


def _apply_common_style(fig: go.Figure, title: str, height: int) -> None:
    fig.update_layout(
        title=title,
        height=height,
        margin=dict(l=20, r=20, t=50, b=20),
        plot_bgcolor="rgba(0,0,0,0)",
        paper_bgcolor="rgba(0,0,0,0)",
        legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
        hovermode="x unified",
    )
    fig.update_yaxes(range=[0, 100], ticksuffix="%", gridcolor="rgba(0,0,0,0.08)")
    fig.update_xaxes(showgrid=False)


def evolution_figure(
    history: Sequence[Mapping[str, Any]],
    names: Optional[Mapping[str, str]] = None,
    show_pillars: bool = False,
    area: bool = False,
    height: int = 360,
) -> go.Figure:
    """Global score over the window, optionally with one series per pillar."""
    names = names or {}
    labels = [p["label"] for p in history]
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=labels,
        y=[p["global"] for p in history],
        name="Score Global",
        mode="lines+markers",
        line=dict(color=GLOBAL_COLOR, width=3),
        fill="tozeroy" if area else None,
    ))
    if show_pillars and history:
        for pid in history[0]["pillars"]:
            fig.add_trace(go.Scatter(
                x=labels,
                y=[p["pillars"].get(pid, 0) for p in history],
                name=names.get(pid, pid),
                mode="lines",
                line=dict(color=pillar_color(pid), width=1.5, dash="dot"),
            ))
    _apply_common_style(fig, "Évolution Temporelle", height)
    return fig


def pillar_bar_figure(pillar_scores: Dict[str, int], names: Optional[Mapping[str, str]] = None, height: int = 300) -> go.Figure:
    names = names or {}
    ids = list(pillar_scores)
    fig = go.Figure(
        data=go.Bar(
            x=[names.get(pid, pid) for pid in ids],
            y=[pillar_scores[pid] for pid in ids],
            marker_color=[pillar_color(pid) for pid in ids],
            text=[f"{pillar_scores[pid]}%" for pid in ids],
            textposition="outside",
        )
    )
    _apply_common_style(fig, "Scores par pilier", height)
    return fig
