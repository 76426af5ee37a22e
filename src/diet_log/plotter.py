"""Grafico de tendencia de peso (PNG)."""

from __future__ import annotations

from collections.abc import Sequence
from io import BytesIO

import matplotlib.pyplot as plt

from diet_log.metrics import weight_trend
from diet_log.model import LogEntry

LINE_COLOR = "#10b981"


def plot_weight_trend(entries: Sequence[LogEntry]) -> BytesIO:
    """Render weight over time, oldest to newest.

    Raises:
        ValueError: If no entry has a recorded weight.
    """
    trend = weight_trend(entries)
    if trend.empty:
        raise ValueError("No hay pesos registrados para graficar")

    positions = list(range(len(trend)))
    weights = trend["weight"].astype(float).tolist()

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(
        positions,
        weights,
        color=LINE_COLOR,
        marker="o",
        markerfacecolor="#ffffff",
        linewidth=2,
    )
    ax.fill_between(positions, weights, min(weights), alpha=0.1, color=LINE_COLOR)
    ax.set_xticks(positions)
    ax.set_xticklabels(trend["label"].tolist(), fontsize=8)
    ax.set_title("Peso (kg)")
    ax.grid(axis="y", alpha=0.2, linestyle="--")
    for spine in ["top", "right"]:
        ax.spines[spine].set_visible(False)

    buf = BytesIO()
    plt.tight_layout()
    plt.savefig(buf, format="png")
    plt.close(fig)
    buf.seek(0)
    return buf
