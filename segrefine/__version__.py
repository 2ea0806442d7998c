# =============================================================================
# SEGREFINE VERSION INFORMATION
# =============================================================================
"""Version information for segrefine package."""

__version__ = "1.0.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

__title__ = "segrefine"
__description__ = "Detection refinement for instance-segmentation model output"
__license__ = "CC BY-NC-SA 4.0"

__all__ = [
    "__version__",
    "__version_info__",
    "__title__",
    "__description__",
    "__license__",
]
