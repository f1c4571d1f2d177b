"""
Discrimination metrics for binary scores.

This module provides the two computation stages behind the separation
metrics and the metric classes built on them:

- rank grouping (``rank_groups``): equal-population groups in descending
  score order, feeding KS and Lift;
- confusion sweep (``confusion_sweep``): cumulative confusion counts per
  distinct prediction value, feeding ROC, AUC and Precision-Recall.

Both stages expect observations that went through the seeded pre-shuffle
(see ``core.preprocessing.shuffle_observations``). Rank grouping relies on
it to break ties between equal scores; the confusion sweep collapses equal
scores into one point instead.
"""

import logging
import numbers
from typing import Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

from ...core.base import BaseMetric
from ...core.data_classes import MetricResult, GROUP_COLUMNS, CONFUSION_COLUMNS
from ...core.exceptions import InvalidInputError
from ...core.preprocessing import require_both_classes

logger = logging.getLogger(__name__)

GroupCount = Union[int, str]


def resolve_group_count(group_count: GroupCount, n_obs: int) -> int:
    """
    Validate ``group_count``; the sentinel ``"N"`` means one group per observation.
    """
    if isinstance(group_count, str):
        if group_count == "N":
            return int(n_obs)
        raise InvalidInputError(f"group_count must be a positive integer or 'N', got '{group_count}'.")
    if isinstance(group_count, bool):
        raise InvalidInputError("group_count must be a positive integer or 'N', got a boolean.")
    if isinstance(group_count, float) and group_count.is_integer():
        group_count = int(group_count)
    if not isinstance(group_count, numbers.Integral) or group_count < 1:
        raise InvalidInputError(f"group_count must be a positive integer or 'N', got {group_count!r}.")
    return int(group_count)


def rank_groups(y_true: np.ndarray, y_pred: np.ndarray, group_count: GroupCount = 20) -> pd.DataFrame:
    """
    Partition observations into equal-population groups by descending score.

    The i-th record (1-based, descending score, ties in input order) goes to
    group ``ceil(i / (N / group_count))``. Per group the good/bad counts,
    their shares of the totals, the cumulative shares and
    ``ks = cumbad - cumgood`` are derived. A group 0 row of zeros is
    prepended so the curves start at the origin; groups are renumbered
    1..G in score order (``group_count > N`` leaves one record per group).

    Returns
    -------
    pd.DataFrame
        Columns ``GROUP_COLUMNS``; ``position`` is the cumulative share of
        the population covered after each group.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    n_obs = len(y_pred)
    n_groups = resolve_group_count(group_count, n_obs)
    n_bad, n_good = require_both_classes(y_true, "KS/Lift")

    # stable sort keeps the pre-shuffled order within tied scores
    order = np.argsort(-y_pred, kind="stable")
    rank = np.arange(1, n_obs + 1)
    # ceil(i * G / N) in exact integer arithmetic
    group = -(-rank * n_groups // n_obs)

    counts = (
        pd.DataFrame({"group": group, "label": y_true[order]})
        .groupby("group", sort=True)["label"]
        .agg(count="size", bad="sum")
        .reset_index(drop=True)
    )
    counts["good"] = counts["count"] - counts["bad"]

    table = pd.DataFrame({
        "group": np.arange(1, len(counts) + 1),
        "count": counts["count"].to_numpy(),
        "good": counts["good"].to_numpy(),
        "bad": counts["bad"].to_numpy(),
    })
    table["good_share"] = table["good"] / n_good
    table["bad_share"] = table["bad"] / n_bad
    table["cumgood"] = table["good"].cumsum() / n_good
    table["cumbad"] = table["bad"].cumsum() / n_bad
    table["ks"] = table["cumbad"] - table["cumgood"]
    table["position"] = table["count"].cumsum() / n_obs

    origin = pd.DataFrame([dict.fromkeys(GROUP_COLUMNS, 0)])
    table = pd.concat([origin, table[GROUP_COLUMNS]], ignore_index=True)
    logger.debug(f"Rank grouping: {n_obs} observations into {len(counts)} groups")
    return table


def ks_statistic(groups: pd.DataFrame) -> Tuple[float, int, float]:
    """
    Maximum of the KS column, first occurrence on ties.

    Returns
    -------
    Tuple[float, int, float]
        (ks, group, position) of the maximising row.
    """
    idx = int(np.argmax(groups["ks"].to_numpy()))
    row = groups.iloc[idx]
    return float(row["ks"]), int(row["group"]), float(row["position"])


def confusion_sweep(y_true: np.ndarray, y_pred: np.ndarray) -> pd.DataFrame:
    """
    Cumulative confusion counts per distinct prediction value.

    Values are walked in ascending order; at each threshold every observation
    with a value <= threshold is predicted negative, so
    ``FN``/``TN`` are running sums of positives/negatives and
    ``TP = P - FN``, ``FP = N - TN``.

    Returns
    -------
    pd.DataFrame
        Columns ``CONFUSION_COLUMNS``, one row per distinct value.
        ``precision`` is NaN where nothing is predicted positive.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    n_pos, n_neg = require_both_classes(y_true, "ROC/AUC")

    sweep = (
        pd.DataFrame({"threshold": y_pred, "label": y_true})
        .groupby("threshold", sort=True)["label"]
        .agg(count="size", countP="sum")
        .reset_index()
    )
    sweep["countN"] = sweep["count"] - sweep["countP"]
    sweep["FN"] = sweep["countP"].cumsum()
    sweep["TN"] = sweep["countN"].cumsum()
    sweep["TP"] = n_pos - sweep["FN"]
    sweep["FP"] = n_neg - sweep["TN"]
    sweep["TPR"] = sweep["TP"] / (sweep["TP"] + sweep["FN"])
    sweep["FPR"] = sweep["FP"] / (sweep["TN"] + sweep["FP"])
    predicted_pos = (sweep["TP"] + sweep["FP"]).to_numpy()
    sweep["precision"] = np.divide(
        sweep["TP"].to_numpy(), predicted_pos,
        out=np.full(len(sweep), np.nan), where=predicted_pos > 0
    )
    sweep["recall"] = sweep["TP"] / (sweep["TP"] + sweep["FN"])
    logger.debug(f"Confusion sweep: {len(y_pred)} observations, {len(sweep)} distinct values")
    return sweep[CONFUSION_COLUMNS]


def _roc_points(sweep: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
    """(FPR, TPR) in ascending-threshold order, led by the all-positive point (1, 1)."""
    fpr = np.concatenate([[1.0], sweep["FPR"].to_numpy(dtype=float)])
    tpr = np.concatenate([[1.0], sweep["TPR"].to_numpy(dtype=float)])
    return fpr, tpr


def auc_trapezoid(sweep: pd.DataFrame) -> float:
    """
    Area under the ROC curve by the trapezoidal rule.

    ``sum(0.5 * (TPR_i + TPR_next) * (FPR_i - FPR_next))`` over consecutive
    points in ascending-threshold order; the last point has no successor.
    Equal to the Mann-Whitney estimator (``rank_auc``), ties included.
    """
    fpr, tpr = _roc_points(sweep)
    fpr_next = np.append(fpr[1:], fpr[-1])
    tpr_next = np.append(tpr[1:], tpr[-1])
    return float(np.sum(0.5 * (tpr + tpr_next) * (fpr - fpr_next)))


def rank_auc(y_true: np.ndarray, y_pred: np.ndarray) -> float:
    """
    Closed-form AUC (Mann-Whitney U / (n_bad * n_good)) with mid-ranks for ties.
    """
    y_true = np.asarray(y_true)
    n_bad, n_good = require_both_classes(y_true, "AUC")
    ranks = stats.rankdata(np.asarray(y_pred, dtype=float))
    u_stat = ranks[y_true == 1].sum() - n_bad * (n_bad + 1) / 2.0
    return float(u_stat / (n_bad * n_good))


def break_even_points(sweep: pd.DataFrame) -> pd.DataFrame:
    """Rows of the sweep where precision equals recall."""
    return sweep[sweep["precision"] == sweep["recall"]]


class KSStat(BaseMetric):
    """
    Kolmogorov-Smirnov statistic over score-ranked groups.

    Observations are ranked by descending score and split into
    ``group_count`` equal-population groups; KS is the largest gap between
    the cumulative share of bads and the cumulative share of goods.

    - 0: no separation between goods and bads
    - 1: perfect separation

    The result carries the KS curve (cumulative good/bad shares by population
    position) as figure data.

    Parameters (config ``params``)
    ------------------------------
    group_count : int or 'N', default 20
    seed : int, default 186
    """
    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="curve", config=config, config_path=config_path, **kwargs)

    def _compute_raw(self, y_true=None, y_pred=None, groups: pd.DataFrame = None, **kwargs):
        if groups is None:
            if y_true is None or y_pred is None:
                raise InvalidInputError("Either 'groups' or both 'y_true' and 'y_pred' must be provided.")
            groups = rank_groups(y_true, y_pred, self._get_param("group_count", default=20))

        ks, group, position = ks_statistic(groups)
        return MetricResult(
            name=self.__class__.__name__,
            value=ks,
            details={
                "group": group,
                "position": position,
                "n_groups": int(len(groups) - 1),
                "n_obs": int(groups["count"].sum()),
                "n_defaults": int(groups["bad"].sum())
            },
            figure_data={
                "kind": "ks",
                "x": groups["position"].tolist(),
                "cumgood": groups["cumgood"].tolist(),
                "cumbad": groups["cumbad"].tolist(),
                "ks": groups["ks"].tolist(),
                "ks_value": ks,
                "ks_position": position,
                "title": "K-S",
                "xlabel": "% of population",
                "ylabel": "% of total Good/Bad"
            }
        )


class Lift(BaseMetric):
    """
    Lift table over score-ranked groups.

    For each group (descending score) the share of all bads it captures is
    compared with the uniform rate ``1 / group_count`` a random ordering
    would give. ``value`` is the lift ratio of the riskiest group.
    """
    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="distribution", config=config, config_path=config_path, **kwargs)

    def _compute_raw(self, y_true=None, y_pred=None, groups: pd.DataFrame = None, **kwargs):
        group_count = self._get_param("group_count", default=20)
        if groups is None:
            if y_true is None or y_pred is None:
                raise InvalidInputError("Either 'groups' or both 'y_true' and 'y_pred' must be provided.")
            groups = rank_groups(y_true, y_pred, group_count)

        n_groups = resolve_group_count(group_count, int(groups["count"].sum()))
        reference = 1.0 / n_groups
        table = groups[groups["group"] > 0][["group", "position", "count", "bad", "bad_share"]].reset_index(drop=True)
        table["reference"] = reference
        table["lift"] = table["bad_share"] / reference

        return MetricResult(
            name=self.__class__.__name__,
            value=float(table["lift"].iloc[0]),
            details={
                "table": table,
                "reference": reference,
                "n_obs": int(table["count"].sum()),
                "n_defaults": int(table["bad"].sum())
            },
            figure_data={
                "kind": "lift",
                "x": table["position"].tolist(),
                "y": table["bad_share"].tolist(),
                "reference": reference,
                "title": "Lift",
                "xlabel": "% of population",
                "ylabel": "% of total Bad"
            }
        )


class ROCCurve(BaseMetric):
    """
    ROC curve coordinates with the AUC statistic.

    The curve plots the true positive rate against the false positive rate at
    every distinct prediction value; ties collapse into a single point.
    The diagonal (AUC = 0.5) is the random model, (0, 1) the perfect one.
    """
    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="curve", config=config, config_path=config_path, **kwargs)

    def _compute_raw(self, y_true=None, y_pred=None, sweep: pd.DataFrame = None, **kwargs):
        if sweep is None:
            if y_true is None or y_pred is None:
                raise InvalidInputError("Either 'sweep' or both 'y_true' and 'y_pred' must be provided.")
            sweep = confusion_sweep(y_true, y_pred)

        auc_score = auc_trapezoid(sweep)
        fpr, tpr = _roc_points(sweep)
        return MetricResult(
            name=self.__class__.__name__,
            value=auc_score,
            details={
                "n_obs": int(sweep["count"].sum()),
                "n_defaults": int(sweep["countP"].sum()),
                "n_thresholds": int(len(sweep))
            },
            figure_data={
                "kind": "roc",
                "x": fpr[::-1].tolist(),
                "y": tpr[::-1].tolist(),
                "thresholds": sweep["threshold"].iloc[::-1].tolist(),
                "auc": auc_score,
                "title": "ROC",
                "xlabel": "FPR",
                "ylabel": "TPR"
            }
        )


class AUC(BaseMetric):
    """
    AUC (Area Under the ROC Curve).

    - AUC = 0.5: no discriminatory power
    - AUC > 0.5: bads tend to get higher scores than goods
    - AUC < 0.5: inverse ordering

    Computed from the confusion sweep by the trapezoidal rule; the
    Mann-Whitney estimate is reported alongside in ``details``.
    """
    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="curve", config=config, config_path=config_path, **kwargs)

    def _compute_raw(self, y_true=None, y_pred=None, sweep: pd.DataFrame = None, **kwargs):
        if sweep is None:
            if y_true is None or y_pred is None:
                raise InvalidInputError("Either 'sweep' or both 'y_true' and 'y_pred' must be provided.")
            sweep = confusion_sweep(y_true, y_pred)

        auc_score = auc_trapezoid(sweep)
        details = {
            "n_obs": int(sweep["count"].sum()),
            "n_defaults": int(sweep["countP"].sum()),
            "gini": 2 * auc_score - 1
        }
        if y_true is not None and y_pred is not None:
            details["auc_rank"] = rank_auc(y_true, y_pred)
        return MetricResult(
            name=self.__class__.__name__,
            value=auc_score,
            details=details
        )


class PrecisionRecall(BaseMetric):
    """
    Precision-Recall curve.

    ``value`` is the break-even point (recall where precision equals recall),
    None when the curve never crosses the diagonal at a sweep point.
    """
    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="curve", config=config, config_path=config_path, **kwargs)

    def _compute_raw(self, y_true=None, y_pred=None, sweep: pd.DataFrame = None, **kwargs):
        if sweep is None:
            if y_true is None or y_pred is None:
                raise InvalidInputError("Either 'sweep' or both 'y_true' and 'y_pred' must be provided.")
            sweep = confusion_sweep(y_true, y_pred)

        bep = break_even_points(sweep)
        curve = sweep.dropna(subset=["precision"]).iloc[::-1]
        return MetricResult(
            name=self.__class__.__name__,
            value=float(bep["recall"].iloc[0]) if len(bep) else None,
            details={
                "break_even": bep.reset_index(drop=True),
                "n_obs": int(sweep["count"].sum()),
                "n_defaults": int(sweep["countP"].sum())
            },
            figure_data={
                "kind": "pr",
                "x": curve["recall"].tolist(),
                "y": curve["precision"].tolist(),
                "break_even": bep["recall"].tolist(),
                "title": "P-R",
                "xlabel": "Recall",
                "ylabel": "Precision"
            }
        )
