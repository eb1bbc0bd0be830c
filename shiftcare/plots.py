# shiftcare/plots.py
from __future__ import annotations

from typing import List, Optional
import datetime as dt

import matplotlib.pyplot as plt

from .rhythm import BatteryDay

_BAND_SPANS = (
    (0, 20, "red"),
    (20, 50, "orange"),
    (50, 100, "green"),
)


def _dates(isos: List[str]) -> List[dt.date]:
    return [dt.date.fromisoformat(s) for s in isos]


def _shade_bands(ax: plt.Axes) -> None:
    for lo, hi, color in _BAND_SPANS:
        ax.axhspan(lo, hi, color=color, alpha=0.06, label="_band")


def plot_vitals(
    vitals,
    title: str = "ShiftCare · Body / Mental Battery",
    show_debt: bool = False,
    ax: Optional[plt.Axes] = None,
):
    """
    Plot daily Body and Mental battery (0..100) with risk bands.
    Night-shift days are marked on the x axis.
    If show_debt=True, sleep debt (hours) goes on a secondary axis.
    Returns matplotlib Figure.
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    t = _dates([v.date_iso for v in vitals])
    ax.plot(t, [v.body_value for v in vitals], label="Body", marker="o", markersize=3)
    ax.plot(t, [v.mental_value for v in vitals], label="Mental", marker="o", markersize=3)
    _shade_bands(ax)

    nights = [d for d, v in zip(t, vitals) if v.shift == "N"]
    if nights:
        ax.scatter(nights, [2] * len(nights), marker="^", color="black", s=18, label="Night")

    ax.set_title(title)
    ax.set_ylim(0, 100)
    ax.set_ylabel("Battery")
    ax.set_xlabel("Date")
    ax.grid(True, alpha=0.2)
    fig.autofmt_xdate()

    if show_debt:
        ax2 = ax.twinx()
        ax2.plot(t, [v.engine.get("sleep_debt_hours", 0.0) for v in vitals], label="sleep debt (h)", linestyle="--")
        ax2.set_ylabel("Sleep debt (hours)")
        ax2.grid(False)
        h1, l1 = ax.get_legend_handles_labels()
        h2, l2 = ax2.get_legend_handles_labels()
        ax.legend(h1 + h2, l1 + l2, loc="upper right")
    else:
        ax.legend(loc="upper right")

    return fig


def plot_forecast(
    days: List[BatteryDay],
    title: str = "ShiftCare · Battery Forecast",
    ax: Optional[plt.Axes] = None,
):
    """Bar chart of the forecast minimum battery per day, colored by band."""
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    t = _dates([d.date for d in days])
    ax.bar(t, [d.level for d in days], color=[d.color for d in days], alpha=0.8)
    for x, d in zip(t, days):
        ax.annotate(d.shift, (x, d.level), ha="center", va="bottom", fontsize=7)

    ax.axhline(20, color="red", linewidth=0.8, linestyle=":")
    ax.axhline(50, color="orange", linewidth=0.8, linestyle=":")
    ax.set_title(title)
    ax.set_ylim(0, 105)
    ax.set_ylabel("Lowest battery")
    ax.grid(True, axis="y", alpha=0.2)
    fig.autofmt_xdate()
    return fig
