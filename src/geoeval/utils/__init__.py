"""Utility modules for GeoEval."""

from .data_prep import build_report_file, export_to_xlsx, prepare_report

__all__ = [
    "build_report_file",
    "export_to_xlsx",
    "prepare_report",
]
