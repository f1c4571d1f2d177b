# scoreperf/src/scoreperf/metrics/__init__.py

"""
Metrics package for binary score evaluation.

This package provides discrimination metrics (KS, Lift, ROC/AUC,
Precision-Recall) and the Population Stability Index.
"""

from .perf import (
    # Discrimination metrics
    KSStat, Lift, ROCCurve, AUC, PrecisionRecall,

    # Stability metrics
    PSI
)

METRIC_REGISTRY = {
    # Discrimination metrics
    "ks": KSStat,
    "lift": Lift,
    "roc": ROCCurve,
    "auc": AUC,
    "pr": PrecisionRecall,

    # Stability metrics
    "psi": PSI,
}
