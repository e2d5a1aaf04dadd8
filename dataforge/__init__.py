"""
DataForge: schema inference and synthetic data generation from JSON samples.
"""

__version__ = "0.0.1"

from dataforge.core.pipeline import ForgePipeline
from dataforge.core.config import AnalysisResult, FieldConfig, FieldOptions, GenerationStrategy

__all__ = ["ForgePipeline", "AnalysisResult", "FieldConfig", "FieldOptions", "GenerationStrategy"]
