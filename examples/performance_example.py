"""
Example demonstrating the performance metrics of scoreperf.

This example shows how to:
1. Evaluate KS, Lift, ROC/AUC and Precision-Recall in one call
2. Inspect the group table behind KS and Lift
3. Compute a single metric with its own configuration
"""

import os

import numpy as np
import pandas as pd

from scoreperf import evaluate_performance
from scoreperf.core.plotting import PlottingService
from scoreperf.metrics import KSStat

# Set random seed for reproducibility
np.random.seed(42)

n_samples = 5000
default_flag = np.random.binomial(1, 0.1, n_samples)
pd_score = np.where(default_flag == 1, np.random.beta(4, 6, n_samples), np.random.beta(2, 8, n_samples))
label = pd.Series(np.where(default_flag == 1, "bad", "good"))

# Example 1: all performance metrics at once
print("Example 1: evaluate_performance")
print("-" * 50)
result = evaluate_performance(label, pd_score, title="development", metrics=("ks", "lift", "roc", "pr"))
print(result.summary())
print(f"Break-even recall: {result.metrics['pr'].value}")

plots_dir = 'plots'
os.makedirs(plots_dir, exist_ok=True)
PlottingService().save_image(result.figure, os.path.join(plots_dir, 'performance.png'))

# Example 2: the lift table
print("\nExample 2: Lift table")
print("-" * 50)
lift_table = result.metrics["lift"].details["table"]
print(lift_table.head(5).round(4).to_string(index=False))

# Example 3: single metric with a model-specific configuration
print("\nExample 3: KS on deciles")
print("-" * 50)
config = {
    "models": {
        "pd_model": {
            "metrics": [
                {"name": "KSStat", "threshold": 0.3, "params": {"group_count": 10, "seed": 186}}
            ]
        }
    }
}
ks = KSStat("pd_model", config=config)
ks_result = ks.compute(y_true=label, y_pred=pd_score)
print(ks_result)
print(pd.Series(ks_result.details))
ks.save_plot(os.path.join(plots_dir, 'ks_deciles.png'))
