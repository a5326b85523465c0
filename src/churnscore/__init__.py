"""
churnscore - Churn Scoring Toolkit

A Python library for interpretable customer churn models with:
- Tukey-fence outlier capping
- Information Value feature filtering
- Supervised ChiMerge binning and WOE transformation
- Logistic regression with iterative significance pruning
- Held-out evaluation (AUC/Gini, best-F1 threshold, confusion matrix)
- Pipeline-style workflow
"""

__version__ = "0.1.0"

# Data
from churnscore.data import DataLoader, DataSplitter, FeatureSchema, FeatureType

# Evaluation
from churnscore.evaluation import EvaluationResult, Evaluator

# WOE/IV analysis
from churnscore.features.analysis import WOETransformer, calculate_iv, calculate_woe

# Core binning
from churnscore.features.binning import (
    Bin,
    BinningMap,
    Binner,
    CategoricalChiMergeBinner,
    ChiMergeBinner,
    FeatureBinning,
)

# Feature selection
from churnscore.features.selection import IVSelector, SignificanceRefiner

# Metrics
from churnscore.metrics import calculate_auc, calculate_gini, find_best_f1_threshold

# Modeling
from churnscore.modeling import FitOptions, LogisticModel, ModelEngine

# Pipeline
from churnscore.pipeline import ChurnPipeline

# Preprocessing
from churnscore.preprocessing import OutlierCapper, cap_outliers

__all__ = [
    # Data
    "DataLoader",
    "DataSplitter",
    "FeatureSchema",
    "FeatureType",
    # Preprocessing
    "OutlierCapper",
    "cap_outliers",
    # Core
    "Bin",
    "Binner",
    "BinningMap",
    "CategoricalChiMergeBinner",
    "ChiMergeBinner",
    "FeatureBinning",
    "WOETransformer",
    "calculate_iv",
    "calculate_woe",
    # Selection
    "IVSelector",
    "SignificanceRefiner",
    # Metrics
    "calculate_auc",
    "calculate_gini",
    "find_best_f1_threshold",
    # Modeling
    "FitOptions",
    "LogisticModel",
    "ModelEngine",
    # Evaluation
    "EvaluationResult",
    "Evaluator",
    # Pipeline
    "ChurnPipeline",
]
