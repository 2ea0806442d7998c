"""
Source code package for the segrefine project.

This package contains the detection refinement pipeline that turns raw
instance-segmentation output into de-duplicated, rasterized detections.
"""

from segrefine.__version__ import __version__, __license__

__all__ = ["__version__", "__license__"]
