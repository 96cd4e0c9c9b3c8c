"""
Plots for model evaluation results.

This module renders the ELPD comparison, density overlays and test statistic
checks to PNG files. Rendering uses the non-interactive Agg backend so it
works on headless machines.
"""
import re
from pathlib import Path
from typing import List, Optional, Sequence, Union

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from utils.logging_utils import logger, log_step
from model.constants import (
    DEFAULT_DPI,
    DEFAULT_FIGURE_SIZE,
    OBSERVED_COLOR,
    REPLICATE_ALPHA,
    REPLICATE_COLOR,
)
from model.exceptions import VisualizationError
from evaluation.comparison import ComparisonTable
from evaluation.ppc import OverlayData, StatCheckData


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", name).strip("_") or "plot"


class EvaluationPlotter:
    """
    Visualization tools for model evaluation results.

    Responsibilities:
    - Plotting ELPD estimates and differences with their standard errors
    - Plotting observed densities against replicated densities
    - Plotting replicated test statistic distributions against the observed value
    """

    def __init__(self, results_dir: Union[str, Path], dpi: int = DEFAULT_DPI):
        """
        Initialize the plotter.

        Args:
            results_dir: Dataset results directory; plots go to its ``plots`` subdirectory
            dpi: Resolution of saved figures
        """
        self.plots_dir = Path(results_dir) / "plots"
        self.plots_dir.mkdir(parents=True, exist_ok=True)
        self.dpi = dpi

        sns.set_style("whitegrid")

    def _save(self, fig, filename: str) -> Path:
        output_path = self.plots_dir / filename
        fig.savefig(output_path, dpi=self.dpi, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Saved plot to {output_path}")
        return output_path

    def plot_elpd_comparison(self, table: ComparisonTable,
                             filename: str = "elpd_comparison.png") -> Path:
        """
        Plot each model's ELPD and its difference from the best model.

        Args:
            table: ELPD comparison
            filename: Name of the file to save the plot to

        Returns:
            Path to the saved plot

        Raises:
            VisualizationError: If plotting fails
        """
        fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)
        try:
            frame = table.to_frame()
            positions = np.arange(len(frame))[::-1]

            ax.errorbar(frame["elpd"], positions, xerr=frame["se"], fmt="o", color=OBSERVED_COLOR,
                        capsize=3, label="ELPD ± SE")
            if len(frame) > 1:
                best = frame["elpd"].iloc[0]
                others = frame.iloc[1:]
                ax.errorbar(best + others["elpd_diff"], positions[1:] - 0.2, xerr=others["se_diff"],
                            fmt="^", color=REPLICATE_COLOR, capsize=3, label="Difference ± SE")
                ax.axvline(best, color="grey", linestyle="--", alpha=0.7)

            labels = [f"{m} (!)" if w else m for m, w in zip(frame["model"], frame["warning"])]
            ax.set_yticks(positions)
            ax.set_yticklabels(labels)
            ax.set_xlabel("ELPD (leave-one-out)")
            ax.set_title("Model comparison")
            ax.legend()
            return self._save(fig, filename)
        except (ValueError, TypeError, OSError) as e:
            plt.close(fig)
            raise VisualizationError(f"ELPD comparison plotting failed: {str(e)}") from e

    def plot_density_overlay(self, overlays: Sequence[OverlayData],
                             filename: Optional[str] = None,
                             xlabel: str = "y") -> Path:
        """
        Plot observed versus replicated outcome densities, one panel per group.

        Args:
            overlays: Overlay panels of a single model
            filename: Name of the file; defaults to ``<model>_density_overlay.png``
            xlabel: Outcome axis label

        Returns:
            Path to the saved plot

        Raises:
            VisualizationError: If there is nothing to plot or plotting fails
        """
        if not overlays:
            raise VisualizationError("No overlay data to plot")

        model = overlays[0].model
        filename = filename or f"{_safe_name(model)}_density_overlay.png"
        n_panels = len(overlays)
        width, height = DEFAULT_FIGURE_SIZE
        fig, axes = plt.subplots(1, n_panels, figsize=(max(width, 4 * n_panels), height),
                                 squeeze=False, sharey=False)
        try:
            for ax, overlay in zip(axes[0], overlays):
                for row in overlay.replicates:
                    sns.kdeplot(x=row, ax=ax, color=REPLICATE_COLOR, alpha=REPLICATE_ALPHA,
                                linewidth=0.8, warn_singular=False)
                sns.kdeplot(x=overlay.observed, ax=ax, color=OBSERVED_COLOR, linewidth=2,
                            warn_singular=False, label="observed")
                ax.plot([], [], color=REPLICATE_COLOR, label=f"replicated ({overlay.n_draws})")
                ax.set_title(overlay.label if n_panels > 1 else model)
                ax.set_xlabel(xlabel)
                ax.legend()

            fig.suptitle(f"Posterior predictive check: {model}")
            return self._save(fig, filename)
        except (ValueError, TypeError, OSError, np.linalg.LinAlgError) as e:
            plt.close(fig)
            raise VisualizationError(f"Density overlay plotting failed: {str(e)}") from e

    def plot_statistic_check(self, check: StatCheckData,
                             filename: Optional[str] = None) -> Path:
        """
        Plot the replicated distribution of a test statistic with the observed value.

        Args:
            check: Test statistic check result
            filename: Name of the file; defaults to ``<model>_<statistic>.png``

        Returns:
            Path to the saved plot

        Raises:
            VisualizationError: If plotting fails
        """
        filename = filename or f"{_safe_name(check.model)}_{_safe_name(check.statistic)}.png"
        fig, ax = plt.subplots(figsize=DEFAULT_FIGURE_SIZE)
        try:
            sns.histplot(check.replicated_values, color=REPLICATE_COLOR, ax=ax,
                         discrete=bool(np.all(np.mod(check.replicated_values, 1) == 0)))
            ax.axvline(check.observed_value, color=OBSERVED_COLOR, linewidth=2,
                       label=f"observed = {check.observed_value:.4g}")
            ax.set_xlabel(check.statistic)
            ax.set_ylabel("Replicates")
            ax.set_title(f"{check.model}: {check.statistic} (p = {check.p_value:.3f})")
            ax.legend()
            return self._save(fig, filename)
        except (ValueError, TypeError, OSError) as e:
            plt.close(fig)
            raise VisualizationError(f"Test statistic plotting failed: {str(e)}") from e

    @log_step("Rendering evaluation plots")
    def plot_all(self, table: ComparisonTable, overlays: Sequence[OverlayData],
                 statistic_checks: Sequence[StatCheckData], xlabel: str = "y") -> List[Path]:
        """Render every plot of a report; returns the written paths."""
        paths = [self.plot_elpd_comparison(table)]

        by_model = {}
        for overlay in overlays:
            by_model.setdefault(overlay.model, []).append(overlay)
        for model_overlays in by_model.values():
            paths.append(self.plot_density_overlay(model_overlays, xlabel=xlabel))

        for check in statistic_checks:
            paths.append(self.plot_statistic_check(check))
        return paths
