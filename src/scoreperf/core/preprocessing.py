"""
Input preparation shared by all metrics: label normalisation and the
seeded pre-shuffle that makes tie-breaking reproducible.
"""

import logging
import numbers
from typing import Tuple, Sequence, Any

import numpy as np
import pandas as pd

from .exceptions import InvalidInputError, DegenerateInputError

logger = logging.getLogger(__name__)


def _as_flat(values: Any, name: str) -> np.ndarray:
    """Return ``values`` as a 1-D object array of scalars."""
    if isinstance(values, pd.DataFrame):
        raise InvalidInputError(f"'{name}' must be a flat sequence, got a DataFrame.")
    if isinstance(values, (str, bytes)) or not hasattr(values, "__len__"):
        raise InvalidInputError(f"'{name}' must be a sequence of scalars, got {type(values).__name__}.")
    if isinstance(values, pd.Series):
        values = values.astype(object).to_numpy()
    arr = np.empty(len(values), dtype=object)
    for i, v in enumerate(values):
        if not pd.api.types.is_scalar(v):
            raise InvalidInputError(
                f"'{name}' must contain scalars only; element {i} is {type(v).__name__}."
            )
        arr[i] = v
    return arr


def _label_to_int(value: Any) -> int:
    # booleans follow the text rule: "True" is not "1"
    if isinstance(value, numbers.Number) and not isinstance(value, (bool, np.bool_)):
        return 1 if value == 1 else 0
    text = str(value)
    return 1 if "bad" in text or text == "1" else 0


def binarize_labels(label: Sequence) -> np.ndarray:
    """
    Map raw labels to 1.0 / 0.0, keeping missing labels as NaN.

    Used where missing labels are tolerated, e.g. the PSI bad-rate overlay.
    """
    labels = _as_flat(label, "label")
    missing = pd.isna(labels).astype(bool)
    return np.array(
        [np.nan if m else float(_label_to_int(v)) for v, m in zip(labels, missing)],
        dtype=float
    )


def normalize_labels(label: Sequence, pred: Sequence) -> Tuple[np.ndarray, np.ndarray]:
    """
    Coerce raw labels to {0, 1} and pair them with the predictions.

    A label maps to 1 when its text contains ``"bad"`` or equals ``"1"``
    (numbers compare by value, so 1 and 1.0 map to 1; booleans go through the
    text rule, so True maps to 0); anything else
    maps to 0. Records whose original label is missing are dropped.

    Parameters
    ----------
    label : sequence of scalars
        Raw outcome labels, e.g. 0/1, "good"/"bad", a pandas categorical.
    pred : sequence of float
        Predicted probabilities or scores, same length as ``label``.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (y_true as int array, y_pred as float array) with missing labels removed.

    Raises
    ------
    InvalidInputError
        Unequal lengths, non-flat input, non-scalar or non-finite predictions.
    DegenerateInputError
        Nothing is left after dropping missing labels.
    """
    labels = _as_flat(label, "label")
    preds = _as_flat(pred, "pred")
    if len(labels) != len(preds):
        raise InvalidInputError(
            f"label and pred must have the same length ({len(labels)} != {len(preds)})."
        )

    keep = ~pd.isna(labels).astype(bool)
    n_dropped = int(len(labels) - keep.sum())
    if n_dropped:
        logger.warning(f"Dropping {n_dropped} observations with missing label")
    if not keep.any():
        raise DegenerateInputError("No observations left after dropping missing labels.")

    try:
        y_pred = np.asarray(preds[keep], dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"pred must be numeric: {e}") from e
    if not np.all(np.isfinite(y_pred)):
        raise InvalidInputError("pred contains non-finite values, e.g. NaNs or INF.")

    y_true = np.fromiter((_label_to_int(v) for v in labels[keep]), dtype=int, count=int(keep.sum()))
    return y_true, y_pred


def require_both_classes(y_true: np.ndarray, metric: str) -> Tuple[int, int]:
    """Return (n_bad, n_good), raising when one of the classes is absent."""
    n_bad = int(np.sum(y_true == 1))
    n_good = int(len(y_true) - n_bad)
    if n_bad == 0 or n_good == 0:
        raise DegenerateInputError(
            f"{metric} requires at least one bad (label = 1) and one good (label = 0) observation."
        )
    return n_bad, n_good


def shuffle_observations(y_true: np.ndarray, y_pred: np.ndarray, seed: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Seeded permutation of paired (label, value) records.

    Records are first put in canonical (value, label) order, so the outcome
    depends only on the multiset of records and the seed.
    """
    y_true = np.asarray(y_true)
    y_pred = np.asarray(y_pred)
    canonical = np.lexsort((y_true, y_pred))
    perm = np.random.default_rng(seed).permutation(len(y_pred))
    order = canonical[perm]
    return y_true[order], y_pred[order]


def shuffle_frame(frame: pd.DataFrame, by: Sequence[str], seed: int) -> pd.DataFrame:
    """Seeded row permutation of ``frame`` after a canonical sort on ``by``."""
    canonical = frame.sort_values(by=list(by), kind="mergesort", na_position="last")
    perm = np.random.default_rng(seed).permutation(len(canonical))
    return canonical.iloc[perm].reset_index(drop=True)
