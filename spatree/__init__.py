"""R-tree and R*-tree spatial indexes for 2D and 3D points."""

__version__ = "0.3.0"