"""
Stability metrics for scores.

This module provides the Population Stability Index (PSI), which measures
the shift of a score distribution between two samples (e.g. development vs.
recent application data):

    PSI = Sum[ (% Actual - % Expected) * ln(% Actual / % Expected) ]

Interpretation commonly used in credit scoring:
- PSI < 0.1: no significant change in population
- 0.1 <= PSI < 0.25: moderate shift, requires investigation
- PSI >= 0.25: significant shift
"""

import logging
from collections.abc import Mapping
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ...core.base import BaseMetric
from ...core.data_classes import MetricResult, BIN_COLUMNS
from ...core.exceptions import InvalidInputError, ArithmeticDomainError
from ...core.preprocessing import binarize_labels, shuffle_frame
from ...utils.helpers import interval_label

logger = logging.getLogger(__name__)

POPULATION_COL = "_population"
LABEL_COL = "_label"
BIN_COL = "_bin"

# Columns with more distinct values than this are binned on a fixed-width grid.
MAX_DISCRETE_VALUES = 10


def validate_grid(score_range: Sequence[float], tick_width: float) -> Tuple[float, float, float]:
    """Check ``score_range`` is an increasing pair and ``tick_width`` positive."""
    try:
        low, high = (float(v) for v in score_range)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"score_range must be a pair of numbers, got {score_range!r}.") from e
    if not low < high:
        raise InvalidInputError(f"score_range must be increasing, got ({low}, {high}).")
    try:
        width = float(tick_width)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"tick_width must be a number, got {tick_width!r}.") from e
    if not np.isfinite(width) or width <= 0:
        raise InvalidInputError(f"tick_width must be positive, got {tick_width}.")
    return low, high, width


def validate_populations(scores: Mapping, labels: Optional[Mapping] = None) -> Tuple[List[str], Dict[str, pd.DataFrame], Optional[Dict[str, np.ndarray]]]:
    """
    Check the two populations and return (names, score frames, label arrays).

    Raises
    ------
    InvalidInputError
        Not exactly two populations, differing column sets, label mapping not
        keyed like the scores, or label length different from score length.
    """
    if not isinstance(scores, Mapping):
        raise InvalidInputError("scores must be a mapping of population name to DataFrame.")
    if len(scores) != 2:
        raise InvalidInputError(f"PSI compares exactly two populations, got {len(scores)}.")

    names = list(scores.keys())
    frames = {}
    for name in names:
        frame = scores[name]
        if isinstance(frame, pd.Series):
            frame = frame.to_frame()
        if not isinstance(frame, pd.DataFrame):
            raise InvalidInputError(f"scores['{name}'] must be a DataFrame, got {type(frame).__name__}.")
        if frame.shape[1] == 0:
            raise InvalidInputError(f"scores['{name}'] has no score columns.")
        frames[name] = frame.reset_index(drop=True)

    first, second = (frames[n] for n in names)
    if set(first.columns) != set(second.columns):
        raise InvalidInputError(
            f"Populations have different columns: {sorted(map(str, first.columns))} vs {sorted(map(str, second.columns))}."
        )

    if labels is None:
        return names, frames, None

    if not isinstance(labels, Mapping):
        raise InvalidInputError("labels must be a mapping of population name to DataFrame.")
    if set(labels.keys()) != set(names):
        raise InvalidInputError(
            f"labels must be keyed like scores: {sorted(map(str, labels.keys()))} vs {sorted(map(str, names))}."
        )
    label_arrays = {}
    for name in names:
        label = labels[name]
        if isinstance(label, pd.DataFrame):
            if label.shape[1] == 0:
                raise InvalidInputError(f"labels['{name}'] has no columns.")
            label = label.iloc[:, 0]
        values = binarize_labels(label)
        if len(values) != len(frames[name]):
            raise InvalidInputError(
                f"labels['{name}'] has {len(values)} rows, scores['{name}'] has {len(frames[name])}."
            )
        label_arrays[name] = values
    return names, frames, label_arrays


def is_continuous(values: pd.Series) -> bool:
    """Numeric column with more than ``MAX_DISCRETE_VALUES`` distinct values."""
    return (
        pd.api.types.is_numeric_dtype(values)
        and not pd.api.types.is_bool_dtype(values)
        and values.nunique(dropna=True) > MAX_DISCRETE_VALUES
    )


def build_breakpoints(values: np.ndarray, score_range: Sequence[float], tick_width: float) -> np.ndarray:
    """
    Bin edges for the continuous regime.

    Union of ``floor(min / w) * w``, the grid ``low + w, low + 2w, ..., high - w``
    and ``ceil(max / w) * w``, deduplicated and sorted. The outer edges
    extend the grid past the observed minimum and maximum; they never fall
    inside the data range when the division rounds.
    """
    low, high, width = validate_grid(score_range, tick_width)
    values = np.asarray(values, dtype=float)
    n_inner = int(np.floor((high - low) / width - 1 + 1e-10))
    inner = low + width * np.arange(1, n_inner + 1) if n_inner > 0 else np.array([])
    edges = np.concatenate([
        [min(np.floor(values.min() / width) * width, values.min())],
        inner,
        [max(np.ceil(values.max() / width) * width, values.max())],
    ])
    return np.unique(edges)


def assign_bins(values: np.ndarray, edges: np.ndarray, tick_width: float) -> pd.Categorical:
    """
    Put each value into ``[edge_k, edge_k+1)`` for the rightmost edge <= value.

    A value equal to the last edge lands in the closing bin
    ``[edge_last, edge_last + tick_width)``.
    """
    values = np.asarray(values, dtype=float)
    uppers = np.append(edges[1:], edges[-1] + tick_width)
    categories = [interval_label(lo, hi) for lo, hi in zip(edges, uppers)]
    codes = np.searchsorted(edges, values, side="right") - 1
    if np.any(codes < 0):
        raise InvalidInputError(f"Values below the first bin edge {edges[0]}: {values[codes < 0][:5].tolist()}.")
    return pd.Categorical.from_codes(codes, categories=categories, ordered=True)


def psi_contributions(actual: np.ndarray, expected: np.ndarray) -> np.ndarray:
    """
    Per-bin ``(A - E) * ln(A / E)``; bins with a zero share on either side contribute 0.
    """
    actual = np.asarray(actual, dtype=float)
    expected = np.asarray(expected, dtype=float)
    if not (np.all(np.isfinite(actual)) and np.all(np.isfinite(expected))):
        raise ArithmeticDomainError("Population shares must be finite.")
    if np.any(actual < 0) or np.any(expected < 0):
        raise ArithmeticDomainError("Population shares must be non-negative.")
    both = (actual > 0) & (expected > 0)
    contrib = np.zeros_like(actual)
    contrib[both] = (actual[both] - expected[both]) * np.log(actual[both] / expected[both])
    return contrib


def psi_bins(binned: pd.DataFrame, populations: Sequence[str]) -> pd.DataFrame:
    """
    Share of each population per bin and the bin's PSI contribution.

    ``binned`` holds one row per observation with ``POPULATION_COL`` and
    ``BIN_COL``. Bins empty in both populations are not listed.
    """
    actual, expected = populations
    counts = (
        binned.groupby([BIN_COL, POPULATION_COL], observed=True, sort=True)
        .size()
        .unstack(POPULATION_COL, fill_value=0)
        .reindex(columns=[actual, expected], fill_value=0)
    )
    totals = counts.sum(axis=0)
    table = pd.DataFrame({
        "bin": counts.index.tolist(),
        "actual_count": counts[actual].to_numpy(),
        "expected_count": counts[expected].to_numpy(),
        "actual_share": (counts[actual] / totals[actual]).to_numpy() if totals[actual] else 0.0,
        "expected_share": (counts[expected] / totals[expected]).to_numpy() if totals[expected] else 0.0,
    })
    table["psi_contrib"] = psi_contributions(table["actual_share"], table["expected_share"])
    return table[BIN_COLUMNS + ["actual_count", "expected_count"]]


def psi_value(bins: pd.DataFrame) -> float:
    """Sum of the per-bin contributions."""
    return float(bins["psi_contrib"].sum())


def score_distribution(binned: pd.DataFrame, populations: Sequence[str], has_labels: bool) -> pd.DataFrame:
    """
    Per population and bin: count, share, bad count and bad rate.

    The bad rate is computed over observations with a known label and is
    NaN without labels. Presentation only; it does not enter the PSI.
    """
    frame = binned.assign(_bad=(binned[LABEL_COL] == 1).astype(int), _known=binned[LABEL_COL].notna().astype(int))
    distr = (
        frame.groupby([POPULATION_COL, BIN_COL], observed=True, sort=True)
        .agg(count=("_known", "size"), bad=("_bad", "sum"), known=("_known", "sum"))
        .reset_index()
        .rename(columns={POPULATION_COL: "population", BIN_COL: "bin"})
    )
    distr["distr"] = distr["count"] / distr.groupby("population")["count"].transform("sum")
    if has_labels:
        distr["badprob"] = distr["bad"] / distr["known"].replace(0, np.nan)
    else:
        distr["bad"] = np.nan
        distr["badprob"] = np.nan
    distr["population"] = pd.Categorical(distr["population"], categories=list(populations), ordered=True)
    return distr.sort_values(["population", "bin"]).reset_index(drop=True)[["population", "bin", "count", "distr", "bad", "badprob"]]


def _distribution_series(distribution: pd.DataFrame, bins: pd.DataFrame, populations: Sequence[str], has_labels: bool) -> Dict:
    """Align the per-population distribution on the bin order of the PSI table."""
    bin_order = bins["bin"].tolist()
    distr, badprob = {}, {}
    for population in populations:
        sub = distribution[distribution["population"] == population].set_index("bin")
        sub.index = sub.index.astype(object)
        distr[population] = sub["distr"].reindex(bin_order, fill_value=0.0).tolist()
        badprob[population] = sub["badprob"].reindex(bin_order).tolist()
    return {
        "bins": bin_order,
        "populations": list(populations),
        "distr": distr,
        "badprob": badprob if has_labels else None,
    }


class PSI(BaseMetric):
    """
    Population Stability Index between two samples, per score column.

    Each score column is binned on a grid shared by both populations:
    numeric columns with more than 10 distinct values use fixed-width bins
    of ``tick_width`` aligned on ``score_range`` and extended past the
    observed minimum and maximum; other columns use one bin per value.
    ``value`` is the largest PSI over the columns; the per-column table is in
    ``details['psi']``.

    Hypothesis test:
    - H0: The distribution is stable (PSI < threshold)
    - H1: The distribution has shifted (PSI >= threshold)

    Parameters (config ``params``)
    ------------------------------
    score_range : (low, high), default (100, 800)
    tick_width : float, default 50
    seed : int, default 186
    title : str, default ""

    References:
    ----------
    - Industry: Siddiqi, N. (2017). "Intelligent Credit Scoring: Building and Implementing
      Better Credit Risk Scorecards," 2nd Edition, Wiley.
    """

    def __init__(self, model_name: str, config=None, config_path=None, **kwargs):
        super().__init__(model_name, metric_type="distribution", config=config, config_path=config_path, **kwargs)

    def _passes(self, value: float, threshold: float) -> bool:
        return bool(value < threshold)

    def _compute_raw(self, scores: Mapping = None, labels: Optional[Mapping] = None, **kwargs):
        """
        Parameters
        ----------
        scores : Mapping[str, pd.DataFrame]
            Exactly two populations, first is 'actual', second 'expected';
            each frame holds one or more score columns.
        labels : Mapping[str, pd.DataFrame], optional
            Labels per population (first column used) for the bad-rate overlay.
        """
        if scores is None:
            raise InvalidInputError("'scores' must be provided.")
        score_range = self._get_param("score_range", default=(100, 800))
        tick_width = self._get_param("tick_width", default=50)
        seed = int(self._get_param("seed", default=186))
        title = self._get_param("title", default="")
        validate_grid(score_range, tick_width)
        populations, frames, label_arrays = validate_populations(scores, labels)
        has_labels = label_arrays is not None

        combined = pd.concat(
            [
                frames[name].assign(**{
                    POPULATION_COL: name,
                    LABEL_COL: label_arrays[name] if has_labels else np.nan
                })
                for name in populations
            ],
            ignore_index=True
        )

        variables = list(frames[populations[0]].columns)
        psi_rows, tables, distributions, charts = [], {}, {}, []
        for variable in variables:
            dat = combined[[POPULATION_COL, LABEL_COL, variable]]
            missing = dat[variable].isna()
            if missing.any():
                logger.warning(f"Dropping {int(missing.sum())} missing values of '{variable}'")
                dat = dat[~missing]
            if dat.empty:
                raise InvalidInputError(f"Score column '{variable}' has no values.")

            dat = shuffle_frame(dat, by=[POPULATION_COL, variable, LABEL_COL], seed=seed)
            if is_continuous(dat[variable]):
                edges = build_breakpoints(dat[variable].to_numpy(), score_range, tick_width)
                dat[BIN_COL] = assign_bins(dat[variable].to_numpy(), edges, float(tick_width))
            else:
                dat[BIN_COL] = dat[variable]

            bins = psi_bins(dat, populations)
            value = psi_value(bins)
            distribution = score_distribution(dat, populations, has_labels)
            logger.info(f"PSI of '{variable}': {value:.4f} over {len(bins)} bins")

            psi_rows.append({"variable": variable, "PSI": value})
            tables[variable] = bins
            distributions[variable] = distribution
            charts.append({
                "kind": "psi",
                **_distribution_series(distribution, bins, populations, has_labels),
                "psi": value,
                "variable": variable,
                "title": f"{title} PSI: {value:.4f}" if title else f"{variable}_PSI: {value:.4f}",
                "ylabel": "Score distribution"
            })

        psi_table = pd.DataFrame(psi_rows, columns=["variable", "PSI"])
        return MetricResult(
            name=self.__class__.__name__,
            value=float(psi_table["PSI"].max()),
            details={
                "psi": psi_table,
                "bins": tables,
                "distribution": distributions,
                "populations": populations,
                "n_obs": {name: len(frames[name]) for name in populations}
            },
            figure_data={"charts": charts}
        )
