"""
Evaluation facade.

Runs the requested metrics on in-memory data, computing every shared stage
only once (KS and Lift share the rank grouping; ROC, AUC and
Precision-Recall share the confusion sweep), and optionally renders the
chart series into one grid image.
"""

import logging
from collections.abc import Mapping
from typing import Dict, Iterable, Optional, Sequence, Tuple, Union

from .core.config_loader import load_config
from .core.data_classes import EvaluationResult
from .core.exceptions import InvalidInputError
from .core.plotting import PlottingService
from .core.preprocessing import normalize_labels, shuffle_observations
from .metrics import METRIC_REGISTRY
from .metrics.perf.discrimination import rank_groups, confusion_sweep, resolve_group_count
from .metrics.perf.stability import validate_grid

logger = logging.getLogger(__name__)

PERFORMANCE_METRICS = ("ks", "lift", "roc", "auc", "pr")
GROUPING_METRICS = {"ks", "lift"}
SWEEP_METRICS = {"roc", "auc", "pr"}


def _requested_metrics(metrics: Union[str, Iterable[str]]) -> Tuple[str, ...]:
    """Lower-cased, de-duplicated metric names in request order."""
    if isinstance(metrics, str):
        metrics = [metrics]
    requested = []
    for name in metrics:
        key = str(name).lower()
        if key not in PERFORMANCE_METRICS:
            raise InvalidInputError(f"Unknown metric '{name}'; expected a subset of {PERFORMANCE_METRICS}.")
        if key not in requested:
            requested.append(key)
    if not requested:
        raise InvalidInputError("At least one metric must be requested.")
    return tuple(requested)


def evaluate_performance(label, pred, title: str = "train", group_count: Union[int, str] = 20,
                         metrics: Union[str, Sequence[str]] = ("ks", "roc"), render: bool = True,
                         seed: int = 186, model_name: str = "default", config: Optional[Dict] = None,
                         style: Optional[Dict] = None) -> EvaluationResult:
    """
    KS, Lift, ROC/AUC and Precision-Recall of a binary score.

    Parameters
    ----------
    label : sequence
        Outcome labels; 1, "1" or anything containing "bad" is the bad class.
        Records with a missing label are dropped.
    pred : sequence of float
        Predicted probability of the bad class (higher = riskier).
    title : str
        Title of the first chart.
    group_count : int or 'N'
        Number of equal-population groups for KS and Lift; 'N' = one per record.
    metrics : str or sequence of {'ks', 'lift', 'roc', 'auc', 'pr'}
        Metrics to compute; 'roc' reports the AUC as well.
    render : bool
        Whether to render the chart series into ``EvaluationResult.figure``.
    seed : int
        Seed of the pre-shuffle that breaks ties between equal scores.
    model_name, config, style
        Configuration section, configuration dict and figure style overrides.

    Returns
    -------
    EvaluationResult
        KS / AUC for the requested metrics, chart series and metric results.
    """
    requested = _requested_metrics(metrics)
    if GROUPING_METRICS.intersection(requested):
        resolve_group_count(group_count, 1)
    y_true, y_pred = normalize_labels(label, pred)
    y_true, y_pred = shuffle_observations(y_true, y_pred, seed)
    logger.info(f"Evaluating {', '.join(requested)} for '{title}' on {len(y_pred)} observations")

    cfg = config if config is not None else load_config()
    params = {"group_count": group_count, "seed": seed}
    result = EvaluationResult(title=title)

    stages = {}
    if GROUPING_METRICS.intersection(requested):
        stages["groups"] = rank_groups(y_true, y_pred, group_count)
    if SWEEP_METRICS.intersection(requested):
        stages["sweep"] = confusion_sweep(y_true, y_pred)

    for key in requested:
        stage = "groups" if key in GROUPING_METRICS else "sweep"
        metric = METRIC_REGISTRY[key](model_name, config=cfg, params=params)
        metric_result = metric.compute(**{stage: stages[stage]})
        result.metrics[key] = metric_result
        if metric_result.has_figure():
            result.series[key] = metric_result.figure_data
        if key == "ks":
            result.KS = metric_result.value
        elif key in ("roc", "auc"):
            result.AUC = metric_result.value

    logger.info(f"Evaluation of '{title}' completed: {result.summary()}")

    if render and result.series:
        service = PlottingService(style)
        result.figure = service.compose_grid(list(result.series.values()), title=title)
    return result


def evaluate_stability(scores: Mapping, labels: Optional[Mapping] = None, title: str = "",
                       score_range: Tuple[float, float] = (100, 800), tick_width: float = 50,
                       render: bool = True, seed: int = 186, model_name: str = "default",
                       config: Optional[Dict] = None, style: Optional[Dict] = None) -> EvaluationResult:
    """
    Population Stability Index of one or more score columns between two samples.

    Parameters
    ----------
    scores : Mapping[str, pd.DataFrame]
        Exactly two populations, e.g. ``{"train": df1, "test": df2}``, with the
        same score columns.
    labels : Mapping[str, pd.DataFrame], optional
        Labels keyed like ``scores`` (first column used) for the bad-rate overlay.
    title : str
        Chart title prefix; when empty each chart is titled by its column name.
    score_range : (low, high)
        Range the fixed-width bin grid is aligned on.
    tick_width : float
        Bin width of the grid.
    render : bool
        Whether to render the distribution charts into ``EvaluationResult.figure``.
    seed : int
        Seed of the pre-shuffle.

    Returns
    -------
    EvaluationResult
        ``psi`` table (variable, PSI) and one ``psi/<variable>`` series per column.
    """
    validate_grid(score_range, tick_width)
    cfg = config if config is not None else load_config()
    params = {
        "score_range": list(score_range),
        "tick_width": tick_width,
        "seed": seed,
        "title": title
    }
    metric = METRIC_REGISTRY["psi"](model_name, config=cfg, params=params)
    metric_result = metric.compute(scores=scores, labels=labels)

    result = EvaluationResult(title=title, psi=metric_result.details["psi"])
    result.metrics["psi"] = metric_result
    for chart in metric_result.figure_data["charts"]:
        result.series[f"psi/{chart['variable']}"] = chart
    logger.info(f"Stability evaluation completed: {result.summary()}")

    if render:
        service = PlottingService(style)
        result.figure = service.compose_grid(metric_result.figure_data["charts"])
    return result
