"""
xray-pipeline: app artifact handling and host-to-company attribution.

Unpacks Android packages into per-app working directories and maps the
network hosts each app contacts onto the companies that operate them.
"""

__version__ = "1.0.0"
__author__ = "xray Team"
