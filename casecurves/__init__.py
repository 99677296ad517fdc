"""
casecurves package
==================

Case-curve toolkit for the JHU CSSE COVID-19 time series.

- The CLI entry point is in `casecurves/cli.py`.
- The reshaping pipeline (trim, select, extents) is in `casecurves/pipeline.py`.
- CSV loading and row normalization are in `casecurves/loader.py`.
- Joining confirmed/deaths/recovered is in `casecurves/merge.py`.
"""

__version__ = '0.3.0'
