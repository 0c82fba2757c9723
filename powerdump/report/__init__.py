from .renderer import BrownoutReport, ReportRenderer

__all__ = ["BrownoutReport", "ReportRenderer"]
