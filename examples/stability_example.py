"""
Example demonstrating the Population Stability Index in scoreperf.

The development sample is compared with a recent application sample whose
score distribution drifted down by about 25 points.
"""

import os

import numpy as np
import pandas as pd

from scoreperf import evaluate_stability
from scoreperf.core.plotting import PlottingService

rng = np.random.default_rng(42)


def make_sample(n, shift):
    bad = rng.binomial(1, 0.15, n)
    score = np.clip(560 - 110 * bad + shift + rng.normal(0, 65, n), 150, 790).round()
    grade = pd.cut(score, [0, 400, 500, 600, 900], labels=["D", "C", "B", "A"])
    return pd.DataFrame({"score": score, "grade": grade.astype(str)}), pd.DataFrame({"bad": bad})


dev_scores, dev_labels = make_sample(4000, 0)
recent_scores, recent_labels = make_sample(2500, -25)

result = evaluate_stability(
    scores={"development": dev_scores, "recent": recent_scores},
    labels={"development": dev_labels, "recent": recent_labels},
    title="dev vs recent",
    score_range=(150, 800),
    tick_width=50
)

print(result.psi.round(4).to_string(index=False))
psi = result.metrics["psi"]
print(f"Largest PSI: {psi.value:.4f} (threshold {psi.threshold}, stable: {psi.passed})")
print(psi.details["bins"]["score"].round(4).to_string(index=False))

plots_dir = 'plots'
os.makedirs(plots_dir, exist_ok=True)
PlottingService().save_image(result.figure, os.path.join(plots_dir, 'psi.png'))
