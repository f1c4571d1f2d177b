"""
scoreperf - performance and stability metrics for binary scores.

    >>> from scoreperf import evaluate_performance, evaluate_stability
    >>> res = evaluate_performance(label, pred, metrics=("ks", "roc"), render=False)
    >>> res.KS, res.AUC
"""

from .core.exceptions import (
    ScorePerfError, InvalidInputError, DegenerateInputError, ArithmeticDomainError
)
from .core.data_classes import MetricResult, EvaluationResult
from .evaluation import evaluate_performance, evaluate_stability

__version__ = "0.1.0"

__all__ = [
    "evaluate_performance", "evaluate_stability",
    "MetricResult", "EvaluationResult",
    "ScorePerfError", "InvalidInputError", "DegenerateInputError", "ArithmeticDomainError",
]
