"""
Score performance metrics.

This package contains metrics for evaluating a binary score, organized by:
- discrimination.py: separation of goods and bads (KS, Lift, ROC/AUC, Precision-Recall)
- stability.py: distribution drift between two samples (PSI)
"""

from .discrimination import (
    KSStat, Lift, ROCCurve, AUC, PrecisionRecall,
    rank_groups, confusion_sweep, auc_trapezoid, rank_auc
)

from .stability import PSI

__all__ = [
    # Discrimination metrics
    'KSStat', 'Lift', 'ROCCurve', 'AUC', 'PrecisionRecall',

    # Stability metrics
    'PSI',

    # Computation stages
    'rank_groups', 'confusion_sweep', 'auc_trapezoid', 'rank_auc',
]
