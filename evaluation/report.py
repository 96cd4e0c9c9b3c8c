#!/usr/bin/env python3
"""
Evaluation report composer.

Assembles the ELPD comparison, density overlay data and test statistic
checks of one dataset into a single report with three sections in fixed
order. Every collected warning is attached to the section it concerns:
estimation and convergence warnings to the comparison, each model's
convergence warnings to that model's checks.
"""

import os
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from pathlib import Path

import numpy as np

from utils.logging_utils import get_logger
from utils.decorators import log_errors
from utils.file_utils import save_json, save_text
from utils.serialization import to_serializable
from evaluation.comparison import ComparisonTable
from evaluation.ppc import OverlayData, StatCheckData
from model.exceptions import EvaluationError

logger = get_logger()

SECTIONS = ("elpd_comparison", "outcome_checks", "statistic_checks")


class EvaluationReport:
    """
    Report of one dataset's model evaluation.

    Attributes:
        dataset (str): Dataset identifier
        comparison (ComparisonTable): Ranked ELPD comparison
        overlays (List[OverlayData]): Density overlay panels
        statistic_checks (List[StatCheckData]): Test statistic checks
        fit_warnings (Dict[str, List[Warning]]): Convergence warnings per model
        model_order (List[str]): Candidate order used within the check sections
    """

    def __init__(
        self,
        dataset: str,
        comparison: ComparisonTable,
        overlays: Sequence[OverlayData] = (),
        statistic_checks: Sequence[StatCheckData] = (),
        fit_warnings: Optional[Mapping[str, Sequence[Warning]]] = None,
        model_order: Optional[Sequence[str]] = None,
    ):
        self.dataset = dataset
        self.comparison = comparison
        self.model_order = list(model_order or comparison.candidate_order)
        self.fit_warnings = {name: list(ws) for name, ws in (fit_warnings or {}).items()}
        self.overlays = self._order_by_model(overlays)
        self.statistic_checks = self._order_by_model(statistic_checks)
        self.created_at = datetime.now().isoformat(timespec="seconds")

    def _order_by_model(self, entries: Sequence[Any]) -> List[Any]:
        rank = {name: i for i, name in enumerate(self.model_order)}
        # Stable sort keeps per-model entry order; unknown models go last
        return sorted(entries, key=lambda entry: rank.get(entry.model, len(rank)))

    def _models_in(self, entries: Sequence[Any]) -> List[str]:
        seen = []
        for entry in entries:
            if entry.model not in seen:
                seen.append(entry.model)
        return seen

    def section_warnings(self, section: str) -> List[str]:
        """
        Warnings attached to a report section, formatted as ``"model: message"``.

        Raises:
            KeyError: If ``section`` is not one of ``SECTIONS``
        """
        if section not in SECTIONS:
            raise KeyError(section)

        if section == "elpd_comparison":
            models = self.model_order
        elif section == "outcome_checks":
            models = self._models_in(self.overlays)
        else:
            models = self._models_in(self.statistic_checks)

        messages = []
        for model in models:
            if section == "elpd_comparison":
                try:
                    row = self.comparison.row_for(model)
                except KeyError:
                    row = None
                if row is not None:
                    messages.extend(_format_warning(model, w) for w in row.warnings)
            messages.extend(_format_warning(model, w) for w in self.fit_warnings.get(model, []))
        return messages

    @property
    def warnings(self) -> List[str]:
        """All warnings of the report, section by section."""
        return [w for section in SECTIONS for w in self.section_warnings(section)]

    def render_text(self) -> str:
        """Render the report as plain text."""
        lines = [f"MODEL EVALUATION REPORT: {self.dataset}", f"Generated: {self.created_at}", ""]

        lines.append("=== ELPD comparison (PSIS-LOO) ===")
        # section warnings below already carry the estimation warnings
        lines.append(self.comparison.format(show_warnings=False))
        lines.extend(self._render_warnings("elpd_comparison"))
        lines.append("")

        lines.append("=== Posterior predictive checks: outcome distribution ===")
        if not self.overlays:
            lines.append("(none)")
        for overlay in self.overlays:
            lines.append(
                f"{overlay.model} [{overlay.label}]: n_obs={overlay.n_obs}, replicates={overlay.n_draws}, "
                f"observed mean={np.mean(overlay.observed):.4g}, "
                f"replicated mean={np.mean(overlay.replicates):.4g}, "
                f"observed sd={np.std(overlay.observed):.4g}, "
                f"replicated sd={np.mean(np.std(overlay.replicates, axis=1)):.4g}")
        lines.extend(self._render_warnings("outcome_checks"))
        lines.append("")

        lines.append("=== Posterior predictive checks: test statistics ===")
        if not self.statistic_checks:
            lines.append("(none)")
        for check in self.statistic_checks:
            low, high = np.percentile(check.replicated_values, [5, 95])
            lines.append(
                f"{check.model} {check.statistic}: observed={check.observed_value:.4g}, "
                f"replicated mean={np.mean(check.replicated_values):.4g} "
                f"[90% interval {low:.4g}, {high:.4g}], p={check.p_value:.3f}")
        lines.extend(self._render_warnings("statistic_checks"))

        return "\n".join(lines) + "\n"

    def _render_warnings(self, section: str) -> List[str]:
        return [f"WARNING {message}" for message in self.section_warnings(section)]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready report. Replicate matrices are summarized, not embedded."""
        overlays = [{
            "model": o.model,
            "label": o.label,
            "n_obs": o.n_obs,
            "n_replicates": o.n_draws,
            "draw_indices": o.draw_indices,
            "observed_mean": np.mean(o.observed),
            "observed_sd": np.std(o.observed),
            "replicated_mean": np.mean(o.replicates),
            "replicated_sd": np.mean(np.std(o.replicates, axis=1)),
        } for o in self.overlays]

        checks = [{
            "model": c.model,
            "statistic": c.statistic,
            "observed_value": c.observed_value,
            "replicated_mean": np.mean(c.replicated_values),
            "replicated_sd": np.std(c.replicated_values),
            "replicated_values": c.replicated_values,
            "p_value": c.p_value,
        } for c in self.statistic_checks]

        report = {
            "dataset": self.dataset,
            "created_at": self.created_at,
            "model_order": self.model_order,
            "elpd_comparison": {
                "noise_factor": self.comparison.noise_factor,
                "table": self.comparison.to_frame(),
                "warnings": self.section_warnings("elpd_comparison"),
            },
            "outcome_checks": {
                "entries": overlays,
                "warnings": self.section_warnings("outcome_checks"),
            },
            "statistic_checks": {
                "entries": checks,
                "warnings": self.section_warnings("statistic_checks"),
            },
        }
        return to_serializable(report)

    @log_errors(expected_exceptions=OSError, msg="Error saving evaluation report", wrap_as=EvaluationError)
    def save(self, results_dir: Union[str, Path]) -> Dict[str, str]:
        """
        Write ``report.txt`` and ``report.json`` into ``results_dir``.

        Returns:
            Mapping of artefact name to written path

        Raises:
            EvaluationError: If the files cannot be written
        """
        text_path = os.path.join(results_dir, "report.txt")
        json_path = os.path.join(results_dir, "report.json")

        save_text(self.render_text(), text_path)
        save_json(self.to_dict(), json_path)

        logger.info(f"Saved evaluation report for '{self.dataset}' to {results_dir}")
        return {"report_text": text_path, "report_json": json_path}


def _format_warning(model: str, warning: Warning) -> str:
    message = str(warning)
    # Model warnings usually start with the model name already
    if message.startswith(f"{model}:"):
        return f"{type(warning).__name__}: {message}"
    return f"{type(warning).__name__}: {model}: {message}"
