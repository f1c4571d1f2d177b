"""
Unit tests for the discrimination metrics in scoreperf.
"""

import pytest
import numpy as np
import pandas as pd

from scoreperf import evaluate_performance
from scoreperf.core.data_classes import MetricResult, GROUP_COLUMNS, CONFUSION_COLUMNS
from scoreperf.core.exceptions import InvalidInputError, DegenerateInputError
from scoreperf.core.preprocessing import shuffle_observations
from scoreperf.metrics.perf.discrimination import (
    KSStat, Lift, ROCCurve, AUC, PrecisionRecall,
    rank_groups, confusion_sweep, auc_trapezoid, rank_auc,
    ks_statistic, break_even_points, resolve_group_count
)

PERFECT_TRUE = np.array([0, 0, 1, 1])
PERFECT_PRED = np.array([0.1, 0.2, 0.8, 0.9])


class TestRankGroups:
    """Tests for the equal-population grouping behind KS and Lift."""

    def test_columns_and_origin_row(self, binary_test_data):
        y_true, y_pred = binary_test_data
        groups = rank_groups(y_true, y_pred, 20)

        assert list(groups.columns) == GROUP_COLUMNS
        assert len(groups) == 21
        assert (groups.iloc[0] == 0).all()
        assert groups["group"].tolist() == list(range(21))

    def test_cumulative_shares_reach_one(self, binary_test_data):
        y_true, y_pred = binary_test_data
        groups = rank_groups(y_true, y_pred, 10)

        assert groups["cumbad"].iloc[-1] == pytest.approx(1.0)
        assert groups["cumgood"].iloc[-1] == pytest.approx(1.0)
        assert groups["position"].iloc[-1] == pytest.approx(1.0)
        assert groups["count"].sum() == len(y_true)
        assert groups["bad"].sum() == y_true.sum()
        assert np.all(np.diff(groups["cumbad"]) >= 0)
        assert np.all(np.diff(groups["cumgood"]) >= 0)

    def test_uneven_group_sizes(self):
        y_true = np.array([1, 0] * 5)
        y_pred = np.linspace(0.05, 0.95, 10)
        groups = rank_groups(y_true, y_pred, 3)

        assert groups["count"].tolist()[1:] == [3, 3, 4]
        assert groups["position"].tolist()[1:] == pytest.approx([0.3, 0.6, 1.0])

    def test_one_group_per_observation(self):
        y_true = np.array([1, 0, 1, 0, 0])
        y_pred = np.array([0.9, 0.8, 0.7, 0.2, 0.1])
        groups = rank_groups(y_true, y_pred, "N")

        assert len(groups) == 6
        assert groups["count"].tolist()[1:] == [1] * 5
        assert groups["bad"].tolist()[1:] == [1, 0, 1, 0, 0]

    def test_more_groups_than_observations(self):
        y_true = np.array([1, 0, 1, 0, 0, 1, 0, 0, 0, 0])
        y_pred = np.linspace(0.9, 0.0, 10)
        groups = rank_groups(y_true, y_pred, 50)

        assert groups["group"].tolist() == list(range(11))
        assert groups["count"].tolist()[1:] == [1] * 10

    def test_single_class(self):
        with pytest.raises(DegenerateInputError):
            rank_groups(np.zeros(10, dtype=int), np.linspace(0, 1, 10), 5)

    @pytest.mark.parametrize("group_count", [0, -3, 2.5, "abc", True, None])
    def test_invalid_group_count(self, group_count):
        with pytest.raises(InvalidInputError):
            resolve_group_count(group_count, 100)

    def test_group_count_resolution(self):
        assert resolve_group_count("N", 37) == 37
        assert resolve_group_count(10.0, 37) == 10
        assert resolve_group_count(np.int64(4), 37) == 4


class TestKSStat:
    """Tests for KS metric."""

    def test_ks_perfect_separation(self):
        ks = KSStat("test_model", params={"group_count": 4})
        result = ks.compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert isinstance(result, MetricResult)
        assert result.name == "KSStat"
        assert result.value == 1.0
        assert result.details["group"] == 2
        assert result.details["position"] == 0.5
        assert result.details["n_obs"] == 4
        assert result.details["n_defaults"] == 2

    def test_ks_default_group_count_on_small_sample(self):
        """20 groups over 4 observations leave one observation per group."""
        result = KSStat("test_model").compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert result.value == 1.0
        assert result.details["n_groups"] == 4

    def test_ks_inverse_ordering(self):
        """A score ranking goods first never rises above the origin."""
        ks = KSStat("test_model", params={"group_count": 4})
        result = ks.compute(y_true=PERFECT_TRUE[::-1], y_pred=PERFECT_PRED)

        assert result.value == 0.0
        assert result.details["group"] == 0
        assert result.details["position"] == 0.0

    def test_ks_range(self, binary_test_data):
        y_true, y_pred = binary_test_data
        result = KSStat("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert 0 < result.value <= 1
        assert result.value > 0.5

    def test_ks_first_maximum(self):
        groups = pd.DataFrame({
            "group": [0, 1, 2, 3],
            "ks": [0.0, 0.4, 0.4, 0.1],
            "position": [0.0, 0.3, 0.6, 1.0]
        })
        assert ks_statistic(groups) == (0.4, 1, 0.3)

    def test_ks_from_precomputed_groups(self, binary_test_data):
        y_true, y_pred = binary_test_data
        direct = KSStat("test_model", params={"group_count": 10}).compute(y_true=y_true, y_pred=y_pred)
        groups = rank_groups(*_shuffled(y_true, y_pred), 10)
        staged = KSStat("test_model").compute(groups=groups)

        assert staged.value == direct.value

    def test_ks_figure_data(self, binary_test_data):
        y_true, y_pred = binary_test_data
        result = KSStat("test_model").compute(y_true=y_true, y_pred=y_pred)
        data = result.figure_data

        assert data["kind"] == "ks"
        assert data["x"][0] == 0 and data["x"][-1] == pytest.approx(1.0)
        assert len(data["cumbad"]) == len(data["cumgood"]) == len(data["x"])
        assert data["ks_value"] == result.value

    def test_ks_deterministic(self, tied_test_data):
        y_true, y_pred = tied_test_data
        first = KSStat("test_model").compute(y_true=y_true, y_pred=y_pred)
        second = KSStat("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert first.value == second.value
        assert first.figure_data["ks"] == second.figure_data["ks"]

    def test_ks_seed_irrelevant_without_ties(self, binary_test_data):
        y_true, y_pred = binary_test_data
        a = KSStat("test_model", params={"seed": 1}).compute(y_true=y_true, y_pred=y_pred)
        b = KSStat("test_model", params={"seed": 2}).compute(y_true=y_true, y_pred=y_pred)

        assert a.value == b.value

    def test_ks_single_class(self):
        with pytest.raises(DegenerateInputError):
            KSStat("test_model").compute(y_true=np.ones(5), y_pred=np.linspace(0, 1, 5))

    def test_ks_requires_data(self):
        with pytest.raises(InvalidInputError):
            KSStat("test_model").compute()


class TestLift:
    """Tests for the Lift table."""

    def test_lift_perfect_separation(self):
        lift = Lift("test_model", params={"group_count": 2})
        result = lift.compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert result.value == 2.0
        assert result.details["reference"] == 0.5
        assert result.details["table"]["bad_share"].tolist() == [1.0, 0.0]

    def test_lift_averages_to_one(self, binary_test_data):
        y_true, y_pred = binary_test_data
        result = Lift("test_model", params={"group_count": 10}).compute(y_true=y_true, y_pred=y_pred)
        table = result.details["table"]

        assert len(table) == 10
        assert table["lift"].mean() == pytest.approx(1.0)
        assert table["bad_share"].sum() == pytest.approx(1.0)
        assert result.value > 1.0

    def test_lift_figure_data(self, binary_test_data):
        y_true, y_pred = binary_test_data
        result = Lift("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert result.figure_data["kind"] == "lift"
        assert result.figure_data["reference"] == 0.05
        assert len(result.figure_data["x"]) == 20


class TestSeparationScenarios:
    """Eight records, four goods below four bads."""

    @pytest.mark.parametrize("label, expected", [
        ([0, 0, 0, 0, 1, 1, 1, 1], 1.0),
        ([1, 1, 1, 1, 0, 0, 0, 0], 0.0),
    ])
    def test_eight_records(self, label, expected):
        pred = [0.1, 0.2, 0.3, 0.4, 0.6, 0.7, 0.8, 0.9]
        result = evaluate_performance(label, pred, metrics=("ks", "roc"), render=False)

        assert result.KS == pytest.approx(expected)
        assert result.AUC == pytest.approx(expected)


class TestConfusionSweep:
    """Tests for the cumulative confusion counts."""

    def test_columns(self, binary_test_data):
        y_true, y_pred = binary_test_data
        sweep = confusion_sweep(y_true, y_pred)

        assert list(sweep.columns) == CONFUSION_COLUMNS
        assert sweep["threshold"].is_monotonic_increasing

    def test_count_invariants(self, tied_test_data):
        y_true, y_pred = tied_test_data
        sweep = confusion_sweep(y_true, y_pred)
        n_pos, n_neg = int(y_true.sum()), int(len(y_true) - y_true.sum())

        assert len(sweep) == len(np.unique(y_pred))
        assert ((sweep["TP"] + sweep["FN"]) == n_pos).all()
        assert ((sweep["TN"] + sweep["FP"]) == n_neg).all()
        assert sweep["count"].sum() == len(y_true)
        assert np.all(np.diff(sweep["TPR"]) <= 0)
        assert np.all(np.diff(sweep["FPR"]) <= 0)

    def test_last_threshold_predicts_nothing_positive(self):
        sweep = confusion_sweep(PERFECT_TRUE, PERFECT_PRED)
        last = sweep.iloc[-1]

        assert last["TP"] == 0 and last["FP"] == 0
        assert np.isnan(last["precision"])
        assert last["recall"] == 0.0

    def test_break_even_points(self):
        sweep = confusion_sweep(PERFECT_TRUE, PERFECT_PRED)
        bep = break_even_points(sweep)

        assert bep["threshold"].tolist() == [0.2]
        assert (bep["precision"] == bep["recall"]).all()


class TestAUC:
    """Tests for AUC metric."""

    def test_auc_perfect_separation(self):
        """Test AUC with perfect class separation."""
        auc = AUC("test_model")
        result = auc.compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert isinstance(result, MetricResult)
        assert result.value == 1.0
        assert result.name == "AUC"
        assert result.details["n_obs"] == 4
        assert result.details["n_defaults"] == 2
        assert result.details["gini"] == 1.0

    def test_auc_inverse_ordering(self):
        result = AUC("test_model").compute(y_true=PERFECT_TRUE[::-1], y_pred=PERFECT_PRED)
        assert result.value == 0.0

    def test_auc_all_tied(self):
        result = AUC("test_model").compute(y_true=np.array([0, 1, 0, 1]), y_pred=np.full(4, 0.5))
        assert result.value == pytest.approx(0.5)

    def test_auc_random_prediction(self):
        """Test AUC with random predictions (should be around 0.5)."""
        np.random.seed(42)
        y_true = np.random.randint(0, 2, size=100)
        y_pred = np.random.random(size=100)

        result = AUC("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert 0.4 <= result.value <= 0.6

    def test_auc_matches_rank_statistic(self, tied_test_data):
        y_true, y_pred = tied_test_data
        result = AUC("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert abs(result.value - rank_auc(y_true, y_pred)) < 1e-9
        assert abs(result.value - result.details["auc_rank"]) < 1e-9

    @pytest.mark.parametrize("fixture_name", ["binary_test_data", "tied_test_data"])
    def test_auc_matches_sklearn(self, fixture_name, request):
        metrics = pytest.importorskip("sklearn.metrics")
        y_true, y_pred = request.getfixturevalue(fixture_name)

        result = AUC("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert abs(result.value - metrics.roc_auc_score(y_true, y_pred)) < 1e-9

    def test_auc_with_threshold(self):
        """Test AUC with a threshold configuration."""
        config = {
            "models": {
                "test_model": {
                    "metrics": [
                        {"name": "AUC", "threshold": 0.8, "params": {"seed": 186}}
                    ]
                }
            }
        }
        result = AUC("test_model", config=config).compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert result.threshold == 0.8
        assert result.passed is True

    def test_auc_trapezoid_on_sweep(self, binary_test_data):
        y_true, y_pred = binary_test_data
        sweep = confusion_sweep(y_true, y_pred)
        assert abs(auc_trapezoid(sweep) - rank_auc(y_true, y_pred)) < 1e-9

    def test_auc_label_strings(self):
        label = ["good", "good", "bad", "bad"]
        result = AUC("test_model").compute(y_true=label, y_pred=PERFECT_PRED)
        assert result.value == 1.0


class TestROCCurve:
    """Tests for ROCCurve metric."""

    def test_roc_curve_basic(self, binary_test_data):
        """Test basic ROC curve calculation."""
        y_true, y_pred = binary_test_data
        result = ROCCurve("test_model").compute(y_true=y_true, y_pred=y_pred)
        data = result.figure_data

        assert result.has_figure()
        assert data["kind"] == "roc"
        assert data["x"][0] == 0.0 and data["y"][0] == 0.0
        assert data["x"][-1] == 1.0 and data["y"][-1] == 1.0
        assert np.all(np.diff(data["x"]) >= 0)
        assert np.all(np.diff(data["y"]) >= 0)
        assert data["auc"] == result.value

    def test_roc_equals_auc(self, tied_test_data):
        y_true, y_pred = tied_test_data
        roc = ROCCurve("test_model").compute(y_true=y_true, y_pred=y_pred)
        auc = AUC("test_model").compute(y_true=y_true, y_pred=y_pred)
        assert roc.value == auc.value

    def test_roc_points_collapse_ties(self, tied_test_data):
        y_true, y_pred = tied_test_data
        result = ROCCurve("test_model").compute(y_true=y_true, y_pred=y_pred)

        assert result.details["n_thresholds"] == len(np.unique(y_pred))
        assert len(result.figure_data["x"]) == len(np.unique(y_pred)) + 1


class TestPrecisionRecall:
    """Tests for the Precision-Recall curve."""

    def test_break_even_value(self):
        result = PrecisionRecall("test_model").compute(y_true=PERFECT_TRUE, y_pred=PERFECT_PRED)

        assert result.value == 1.0
        assert result.figure_data["break_even"] == [1.0]
        assert len(result.details["break_even"]) == 1

    def test_curve_skips_undefined_precision(self, binary_test_data):
        y_true, y_pred = binary_test_data
        result = PrecisionRecall("test_model").compute(y_true=y_true, y_pred=y_pred)
        data = result.figure_data

        assert data["kind"] == "pr"
        assert not np.any(np.isnan(data["y"]))
        assert np.all(np.diff(data["x"]) >= 0)

    def test_no_break_even(self):
        sweep = pd.DataFrame({
            "threshold": [0.1, 0.5], "count": [1, 1], "countP": [1, 0],
            "precision": [0.5, np.nan], "recall": [1.0, 0.0]
        })
        result = PrecisionRecall("test_model").compute(sweep=sweep)
        assert result.value is None
        assert "(figure)" in repr(result)


def _shuffled(y_true, y_pred, seed=186):
    return shuffle_observations(np.asarray(y_true), np.asarray(y_pred, dtype=float), seed)
