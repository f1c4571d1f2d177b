# src/scoreperf/core/base.py
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple, Optional
import logging

import numpy as np
from tqdm import tqdm

from .config_loader import load_config, DEFAULT_STYLE_PATH
from .data_classes import MetricResult
from .exceptions import InvalidInputError
from .preprocessing import normalize_labels, shuffle_observations
from .plotting import PlottingService
from ..utils import helpers

logger = logging.getLogger(__name__)


class BaseMetric(ABC):
    """
    Abstract base class for all performance and stability metrics.
    Thresholds and other parameters are taken from config.
    """

    # Model section used when the requested model has no entry in the config.
    DEFAULT_MODEL = "default"

    def __init__(self, model_name: str, metric_type: str = "unknown", config: Dict = None, config_path: str = None, **kwargs):
        """
        Parameters
        ----------
        model_name : str
            Name of the scored model; selects the section under ``models`` in the config.
        metric_type : str, optional
            Type of metric ('curve', 'distribution', or custom)
        config : dict, optional
            Configuration dict containing parameters, e.g.:
            {"models": {"pd_model": {"metrics": [{"name": "KSStat", "params": {"group_count": 10}}]}}}
        config_path : str, optional
            Path to a YAML configuration file to load parameters from.
            If both config and config_path are provided, config takes precedence.
        **kwargs : additional keyword arguments
            Additional parameters to override config settings for single metric run,
            e.g. ``params={"seed": 1}`` or ``threshold=0.3``.
        """
        if config is not None:
            self.config = config
        else:
            self.config = load_config(config_path)
        self.model_name = model_name
        self._metric_type = metric_type
        self.metric_config = self._extract_metric_config(**kwargs)
        self.result = None
        self._plotting_service = None
        self._style = self._init_style()

    def _extract_metric_config(self, **kwargs) -> dict:
        """
        Extract metric-specific configuration from loaded YAML or from kwargs overrides.
        """
        class_pascal = self.__class__.__name__
        class_snake = helpers.pascal_to_snake(class_pascal)
        class_names = [class_pascal.lower(), class_snake]
        models = self.config.get("models", {}) or {}
        model_cfg = models.get(self.model_name) or models.get(self.DEFAULT_MODEL, {})
        metrics = model_cfg.get("metrics", [])
        metrics_cfg = next((m for m in metrics if m["name"].lower() in class_names), {})
        params = {**(metrics_cfg.get("params") or {}), **(kwargs.pop("params", None) or {})}
        return {**metrics_cfg, **kwargs, "params": params}

    def _get_param(self, param_name: str, default: Any = None) -> Any:
        """
        Get parameter with validation.
        """
        value = (self.metric_config.get("params") or {}).get(param_name, default)
        if value is None:
            raise InvalidInputError(f"Required parameter '{param_name}' not found in metric configuration.")
        return value

    def _validate_inputs(self, y_true, y_pred) -> Tuple[np.ndarray, np.ndarray]:
        """
        Standard input validation: normalise labels, drop missing ones and
        apply the seeded pre-shuffle.
        """
        y_true, y_pred = normalize_labels(y_true, y_pred)
        seed = int(self._get_param("seed", default=186))
        return shuffle_observations(y_true, y_pred, seed)

    @property
    def plotting_service(self) -> PlottingService:
        """
        Get the plotting service instance.

        Returns
        -------
        PlottingService
            The plotting service instance
        """
        if self._plotting_service is None:
            self._plotting_service = PlottingService(self._style)
        return self._plotting_service

    @abstractmethod
    def _compute_raw(self, **kwargs) -> MetricResult:
        """
        Compute the raw metric value.

        Returns
        -------
        MetricResult
        """
        pass

    def _passes(self, value: float, threshold: float) -> bool:
        return bool(value >= threshold)

    def compute(self, **kwargs) -> MetricResult:
        """
        Computes the metric using provided keyword arguments and wraps the result into a MetricResult.

        Steps:
            1. Validates ``y_true``/``y_pred`` (when given) with ``_validate_inputs``.
            2. Computes the metric with ``_compute_raw``; precomputed stages
               (``groups=``, ``sweep=``) are passed through untouched.
            3. Applies the configured threshold, if any.

        Raises
        ------
        InvalidInputError, DegenerateInputError
            Propagated from validation or computation.
        """
        show_progress = bool(self.config.get("settings", {}).get("show_progress", False))
        steps = ["Validating inputs", "Computing metric", "Wrapping results"]
        with tqdm(total=len(steps), desc=f"Computing {self.__class__.__name__}", disable=not show_progress) as pbar:
            if 'y_true' in kwargs and 'y_pred' in kwargs:
                kwargs['y_true'], kwargs['y_pred'] = self._validate_inputs(kwargs['y_true'], kwargs['y_pred'])
            pbar.update(1)

            result = self._compute_raw(**kwargs)
            pbar.update(1)

            if result.value is not None and result.threshold is None:
                threshold = self.metric_config.get('threshold')
                if threshold is not None:
                    result.threshold = threshold
                    result.passed = self._passes(result.value, threshold)

            self.result = result
            pbar.update(1)
        logger.debug(f"{self.__class__.__name__} for model {self.model_name}: {result.value}")
        return self.result

    @staticmethod
    def _init_style():
        """
        Initialize style configuration for plotting.
        Can be overwritten by user-provided styles.
        """
        return load_config(DEFAULT_STYLE_PATH)

    def _apply_style(self, style: Optional[Dict] = None) -> PlottingService:
        """
        Apply the given style to the plotting service.
        """
        service = self.plotting_service
        if style is not None:
            service.set_style(style)
        elif self._style is not None:
            service.set_style(self._style)
        return service

    def plot(self, result: Optional[MetricResult] = None, style: Optional[Dict] = None) -> Dict[str, Any]:
        """
        Render the figure data of ``result`` (default: last computed result).
        """
        result = result or self.result
        if result is None or not result.has_figure():
            raise InvalidInputError(f"{self.__class__.__name__} has no figure data to plot; call compute() first.")
        service = self._apply_style(style)
        charts = result.figure_data.get("charts", [result.figure_data])
        return service.compose_grid(charts)

    def show_plot(self, result: Optional[MetricResult] = None, style: Optional[Dict] = None):
        """
        Show the plot of the given (or last computed) result.
        """
        service = self._apply_style(style)
        service.display_image(self.plot(result, style))

    def save_plot(self, filepath: str, result: Optional[MetricResult] = None, style: Optional[Dict] = None):
        """
        Save the plot to disk.

        Parameters
        ----------
        filepath : str
            Path where to save the plot
        result : MetricResult, optional
            Result to plot, defaults to the last computed one
        style : Dict, optional
            Style configuration to use
        """
        service = self._apply_style(style)
        service.save_image(self.plot(result, style), filepath)

    @property
    def metric_type(self):
        """Return the type of the metric."""
        return self._metric_type
