"""Bilingual (EN/AR) news aggregation: normalize, cluster, canonicalize, translate."""

__all__ = ["config", "models", "pipeline"]
