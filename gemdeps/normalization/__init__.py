"""Normalization package exports."""

from gemdeps.normalization.dependency_matcher import DependencyMatcher, MatchRules, PatternRule

__all__ = ["DependencyMatcher", "MatchRules", "PatternRule"]
