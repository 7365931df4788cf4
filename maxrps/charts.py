from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from .capacity import CapacityResult
from .samples import Sample, samples_to_dataframe
from .usl import USLParameters

LOGGER = logging.getLogger("maxrps.charts")

sns.set_style("whitegrid")
plt.rcParams["figure.dpi"] = 100
plt.rcParams["savefig.dpi"] = 300
plt.rcParams["font.size"] = 10
plt.rcParams["axes.labelsize"] = 11
plt.rcParams["axes.titlesize"] = 13
plt.rcParams["legend.fontsize"] = 9

OBSERVED_COLOR = "#2E86AB"
MODEL_COLOR = "#F18F01"
PEAK_COLOR = "#C73E1D"


def render_usl_chart(
    samples: Sequence[Sample],
    parameters: USLParameters,
    capacity: CapacityResult | None,
    chart_path: Path,
    title: str = "Throughput vs Concurrency (USL fit)",
) -> Path:
    """Plot observed samples against the fitted USL curve, marking the peak if known."""
    df = samples_to_dataframe(samples)
    fig, ax = plt.subplots(figsize=(10, 6))

    upper = int(df["concurrency"].max()) if not df.empty else 1
    if capacity is not None:
        upper = max(upper, capacity.max_concurrency)
    grid = np.linspace(1, max(upper * 1.25, 2), 200)

    ax.plot(
        grid,
        parameters.throughput(grid),
        linewidth=2.5,
        color=MODEL_COLOR,
        label=(
            f"USL fit (σ={parameters.sigma:.4g}, κ={parameters.kappa:.4g}, "
            f"λ={parameters.lambda_:.4g})"
        ),
    )
    ax.plot(
        df["concurrency"],
        df["throughput"],
        linestyle="none",
        marker="o",
        markersize=8,
        color=OBSERVED_COLOR,
        label="Observed",
    )
    if capacity is not None:
        ax.axvline(capacity.max_concurrency, color=PEAK_COLOR, linestyle="--", alpha=0.6)
        ax.annotate(
            f"peak {capacity.max_throughput:.1f} req/s @ {capacity.max_concurrency}",
            xy=(capacity.max_concurrency, capacity.max_throughput),
            xytext=(8, 8),
            textcoords="offset points",
            color=PEAK_COLOR,
            fontweight="semibold",
        )

    ax.set_xlabel("Concurrency", fontweight="semibold")
    ax.set_ylabel("Throughput (requests/s)", fontweight="semibold")
    ax.set_title(title, fontweight="bold", pad=15)
    ax.grid(True, alpha=0.3, linestyle="--")
    ax.legend(loc="lower right", frameon=True)

    chart_path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout()
    fig.savefig(chart_path, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    LOGGER.info("Rendering chart %s", chart_path)
    return chart_path


__all__ = ["render_usl_chart"]
