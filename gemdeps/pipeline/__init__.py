"""Pipeline package exports."""

from gemdeps.pipeline.dependency_pipeline import BatchResult, DependencyPipeline, VersionResult

__all__ = ["BatchResult", "DependencyPipeline", "VersionResult"]
