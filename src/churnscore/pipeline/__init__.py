"""Chainable churn modelling pipeline."""

from churnscore.pipeline.pipeline import ChurnPipeline

__all__ = ["ChurnPipeline"]
