"""
Portfolio analytics over persisted transactions (cost basis, ROI).
"""

from backend_satstack.analytics.roi import RoiReport, RoiRow, build_roi_report

__all__ = ["RoiReport", "RoiRow", "build_roi_report"]
