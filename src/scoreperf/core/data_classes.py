"""
Shared data classes for scoreperf.

This module contains data classes used across the scoreperf package
to ensure consistent data structures and avoid circular imports.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

import pandas as pd

# Column layouts of the per-stage tables. Derived columns (shares, cumulative
# shares, rates) are always recomputed from the counts.
GROUP_COLUMNS: List[str] = [
    "group", "count", "good", "bad", "good_share", "bad_share",
    "cumgood", "cumbad", "ks", "position"
]
CONFUSION_COLUMNS: List[str] = [
    "threshold", "count", "countP", "countN", "TP", "FP", "TN", "FN",
    "TPR", "FPR", "precision", "recall"
]
BIN_COLUMNS: List[str] = ["bin", "actual_share", "expected_share", "psi_contrib"]


@dataclass
class MetricResult:
    """
    Unified result class for all metrics.
    """
    name: str
    value: Optional[float] = None
    threshold: Optional[float] = None
    passed: Optional[bool] = None
    details: Dict[str, Any] = field(default_factory=dict)
    figure_data: Optional[Dict[str, Any]] = None

    def has_figure(self) -> bool:
        """Check if this result contains figure data"""
        return self.figure_data is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation for serialization."""
        result = {
            'metric': self.name,
            'type': 'figure' if self.has_figure() else 'scalar'
        }

        if self.value is not None:
            result['value'] = self.value

        if self.threshold is not None:
            result['threshold'] = self.threshold
            result['passed'] = self.passed

        if self.details:
            result['details'] = self.details

        if self.figure_data:
            result['figure_data'] = self.figure_data

        return result

    def __repr__(self) -> str:
        if self.value is None:
            return f"<MetricResult {self.name} (figure)>"
        return f"<MetricResult {self.name}: {self.value:.4f}, passes = {self.passed}>"


@dataclass
class EvaluationResult:
    """
    Aggregate returned by the evaluation facade.

    Only the fields of the requested metrics are populated. ``series`` maps a
    chart name ('ks', 'lift', 'roc', 'pr', 'psi/<variable>') to chart-ready
    data; ``figure`` holds the rendered image when rendering was requested.
    """
    title: str = ""
    KS: Optional[float] = None
    AUC: Optional[float] = None
    psi: Optional[pd.DataFrame] = None
    series: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    metrics: Dict[str, MetricResult] = field(default_factory=dict)
    figure: Optional[Dict[str, Any]] = None

    def summary(self, digits: int = 4) -> Dict[str, Any]:
        """Rounded scalar view, e.g. {'KS': 0.4312, 'AUC': 0.7791}."""
        out = {}
        if self.KS is not None:
            out["KS"] = round(self.KS, digits)
        if self.AUC is not None:
            out["AUC"] = round(self.AUC, digits)
        if self.psi is not None:
            out["PSI"] = {
                row.variable: round(row.PSI, digits)
                for row in self.psi.itertuples(index=False)
            }
        return out

    def to_dict(self) -> Dict[str, Any]:
        result = {"title": self.title}
        if self.KS is not None:
            result["KS"] = self.KS
        if self.AUC is not None:
            result["AUC"] = self.AUC
        if self.psi is not None:
            result["psi"] = self.psi.to_dict(orient="records")
        result["series"] = self.series
        result["metrics"] = {name: m.to_dict() for name, m in self.metrics.items()}
        if self.figure is not None:
            result["figure"] = self.figure
        return result
