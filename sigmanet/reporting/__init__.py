"""Reporting helpers: metric sinks, plots, manifests and summaries."""

from .artifacts import write_manifest
from .metrics import CsvSink, JsonlSink, MetricsCapture
from .plots import PlotAdapter
from .summary import write_summary

__all__ = ["CsvSink", "JsonlSink", "MetricsCapture", "PlotAdapter", "write_manifest", "write_summary"]
