from runmetrics.models.metrics import CanonicalMetrics, Lap, Sample

__all__ = ["CanonicalMetrics", "Lap", "Sample"]
