"""Thermal recording uploader for camera trap devices."""

__version__ = "0.1.0"
