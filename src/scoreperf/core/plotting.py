"""
Centralized plotting service for scoreperf.

The metrics never draw anything themselves: they return chart-ready series
(``figure_data`` dicts carrying a ``kind`` key) and this service turns them
into images. Several series can be composed into one grid figure.
"""

import base64
import math
from contextlib import contextmanager
from io import BytesIO
from typing import Dict, Optional, Any, List, Tuple, Generator, Callable

import matplotlib.pyplot as plt
import numpy as np

from .exceptions import InvalidInputError


class PlottingService:
    """
    Centralized service for all plotting operations in scoreperf.

    This class handles visualization of:
    - KS curves (cumulative good/bad shares by population position)
    - Lift bars (share of bads per rank group against the uniform rate)
    - ROC and Precision-Recall curves
    - PSI score distributions with the bad-rate overlay
    """

    def __init__(self, style: Optional[Dict] = None):
        """Initialize the plotting service with a style configuration."""
        self.style = style or self._load_default_style()
        self._drawers: Dict[str, Callable[[plt.Axes, Dict[str, Any]], None]] = {
            "ks": self._draw_ks,
            "lift": self._draw_lift,
            "roc": self._draw_roc,
            "pr": self._draw_pr,
            "psi": self._draw_psi,
        }

    def _load_default_style(self) -> Dict:
        """Load default plotting style from configuration."""
        from .config_loader import load_config, DEFAULT_STYLE_PATH
        return load_config(DEFAULT_STYLE_PATH)

    def set_style(self, style: Dict):
        """Update the plotting style."""
        self.style = style

    @contextmanager
    def _figure_context(self, *args, **kwargs) -> Generator[Tuple[plt.Figure, Any], None, None]:
        """
        Context manager for creating and properly cleaning up matplotlib figures.

        This ensures that figures are closed even if exceptions occur
        during plotting operations.
        """
        fig, ax = plt.subplots(*args, **kwargs)
        try:
            yield fig, ax
        finally:
            plt.close(fig)

    @contextmanager
    def _plotting_context(self):
        """
        Context manager for the entire plotting process; restores the
        matplotlib settings afterwards.
        """
        original_style = plt.rcParams.copy()
        try:
            yield
        finally:
            plt.rcParams.update(original_style)

    def _apply_common_styling(self, ax):
        """Apply common styling elements to an axis."""
        fig_style = self.style.get('figure', {})
        grid_style = self.style.get('grid', {})

        if grid_style.get('show', True):
            ax.grid(
                True,
                linestyle=grid_style.get('linestyle', '--'),
                alpha=grid_style.get('alpha', 0.3),
                color=grid_style.get('color', '#cccccc')
            )
        ax.tick_params(labelsize=fig_style.get('tick_fontsize', 8))

    def _convert_to_image(self, fig: plt.Figure) -> Dict[str, Any]:
        """Convert a matplotlib figure to a dictionary with image data."""
        buf = BytesIO()
        fig.savefig(buf, format='png', bbox_inches='tight')
        buf.seek(0)
        image_base64 = base64.b64encode(buf.read()).decode('utf-8')
        return {
            "image_base64": image_base64,
            "width": fig.get_size_inches()[0] * fig.dpi,
            "height": fig.get_size_inches()[1] * fig.dpi
        }

    def _color(self, key: str, default: str) -> str:
        return self.style.get('colors', {}).get(key, default)

    def _line(self, key: str, default: Any) -> Any:
        return self.style.get('lines', {}).get(key, default)

    def _draw(self, ax, data: Dict[str, Any]):
        kind = data.get("kind")
        drawer = self._drawers.get(kind)
        if drawer is None:
            raise InvalidInputError(f"Unknown chart kind: {kind}")
        drawer(ax, data)
        fig_style = self.style.get('figure', {})
        if data.get("title"):
            ax.set_title(data["title"], fontsize=fig_style.get('title_fontsize', 12))
        if data.get("xlabel"):
            ax.set_xlabel(data["xlabel"], fontsize=fig_style.get('label_fontsize', 10))
        if data.get("ylabel"):
            ax.set_ylabel(data["ylabel"], fontsize=fig_style.get('label_fontsize', 10))
        self._apply_common_styling(ax)

    def plot(self, figure_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Render a single chart series.

        Parameters
        ----------
        figure_data : Dict
            Chart series as produced by a metric (must carry a ``kind`` key).

        Returns
        -------
        Dict
            Dictionary with image data
        """
        return self.compose_grid([figure_data])

    def compose_grid(self, datasets: List[Dict[str, Any]], title: Optional[str] = None) -> Dict[str, Any]:
        """
        Draw several chart series side by side and return one image.

        The grid has ``max(1, n // 2)`` rows. ``title`` replaces the title of
        the first chart; the other charts keep their own.
        """
        if not datasets:
            raise InvalidInputError("No chart series provided for plotting.")
        n = len(datasets)
        nrows = max(1, n // 2)
        ncols = math.ceil(n / nrows)
        fig_style = self.style.get('figure', {})
        figsize = (fig_style.get('width', 5) * ncols, fig_style.get('height', 5) * nrows)

        with self._plotting_context():
            with self._figure_context(nrows, ncols, figsize=figsize, dpi=fig_style.get('dpi', 100), squeeze=False) as (fig, axes):
                flat_axes = axes.ravel()
                for i, data in enumerate(datasets):
                    if i == 0 and title:
                        data = {**data, "title": title}
                    self._draw(flat_axes[i], data)
                for ax in flat_axes[n:]:
                    ax.axis('off')
                fig.tight_layout()
                return self._convert_to_image(fig)

    def _draw_ks(self, ax, data: Dict[str, Any]):
        x = data['x']
        ax.plot(x, data['cumbad'], color=self._color('secondary', 'black'), label='Bad')
        ax.plot(x, data['cumgood'], color=self._color('secondary', 'black'), linestyle=':', label='Good')
        ax.plot(x, data['ks'], color=self._color('primary', 'blue'), label='K-S')
        ks_x, ks_y = data['ks_position'], data['ks_value']
        ax.annotate(
            '', xy=(ks_x, ks_y), xytext=(ks_x, 0),
            arrowprops=dict(arrowstyle='<->', color=self._color('reference', 'red'), linestyle='--')
        )
        ax.text(ks_x, ks_y, f"KS: {ks_y:.4f}", color=self._color('primary', 'blue'), va='bottom')
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.legend(loc='lower right')

    def _draw_lift(self, ax, data: Dict[str, Any]):
        x = np.asarray(data['x'])
        widths = np.diff(np.concatenate([[0.0], x]))
        ax.bar(x - widths, data['y'], width=widths, align='edge', fill=False,
               edgecolor=self._color('secondary', 'black'), label='Model')
        ax.hlines(data['reference'], 0, 1, colors=self._color('reference', 'red'),
                  linestyles=self._line('reference_style', '--'), label='Random')
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.legend(loc='upper right')

    def _draw_roc(self, ax, data: Dict[str, Any]):
        ax.fill_between(data['x'], 0, data['y'], color=self._color('fill', 'blue'),
                        alpha=self._line('fill_alpha', 0.1))
        ax.plot(data['x'], data['y'], color=self._color('secondary', 'black'), label='ROC')
        ax.plot([0, 1], [0, 1], color=self._color('reference', 'red'),
                linestyle=self._line('reference_style', '--'), label='Random')
        ax.text(0.55, 0.45, f"AUC: {data['auc']:.4f}", color=self._color('primary', 'blue'))
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)
        ax.legend(loc='lower right')

    def _draw_pr(self, ax, data: Dict[str, Any]):
        ax.plot(data['x'], data['y'], color=self._color('secondary', 'black'), label='P-R')
        ax.plot([0, 1], [0, 1], color=self._color('reference', 'red'),
                linestyle=self._line('reference_style', '--'))
        for bep in data.get('break_even', []):
            ax.scatter([bep], [bep], color=self._color('primary', 'blue'), zorder=3)
        ax.set_xlim(0, 1)
        ax.set_ylim(0, 1)

    def _draw_psi(self, ax, data: Dict[str, Any]):
        bins = [str(b) for b in data['bins']]
        populations = data['populations']
        colors = self._color('populations', ['#1f77b4', '#ff7f0e'])
        pos = np.arange(len(bins))
        width = 0.8 / max(len(populations), 1)
        max_distr = max((max(data['distr'][p], default=0) for p in populations), default=0) or 1.0

        for i, population in enumerate(populations):
            ax.bar(pos + (i - (len(populations) - 1) / 2) * width, data['distr'][population], width=width,
                   alpha=self._line('bar_alpha', 0.6), color=colors[i % len(colors)], label=population)
        ax.set_xticks(pos)
        ax.set_xticklabels(bins, rotation=45, ha='right')
        ax.set_ylim(0, max_distr * 1.1)
        ax.legend(title='Distribution', loc='upper left')

        badprob = data.get('badprob')
        if badprob:
            ax2 = ax.twinx()
            for i, population in enumerate(populations):
                ax2.plot(pos, badprob[population], marker='o', markerfacecolor='white',
                         color=colors[i % len(colors)], linestyle='-' if i == 0 else '--',
                         label=population)
            ax2.set_ylabel('Bad probability')
            ax2.legend(title='Probability', loc='upper right')

    def display_image(self, image_data: Dict):
        """Display an image in the current context."""
        img_data = base64.b64decode(image_data["image_base64"])

        with self._figure_context(figsize=(image_data.get("width", 800)/100,
                                          image_data.get("height", 600)/100)) as (fig, ax):
            img = plt.imread(BytesIO(img_data))
            ax.imshow(img)
            ax.axis('off')
            plt.tight_layout()
            plt.show()

    def save_image(self, image_data: Dict, filepath: str):
        """Save an image to disk."""
        img_data = base64.b64decode(image_data["image_base64"])
        with open(filepath, "wb") as f:
            f.write(img_data)
