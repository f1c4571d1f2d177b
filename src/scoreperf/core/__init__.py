from .exceptions import (
    ScorePerfError, InvalidInputError, DegenerateInputError, ArithmeticDomainError
)
from .data_classes import MetricResult, EvaluationResult
