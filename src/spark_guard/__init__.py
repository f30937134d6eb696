# ABOUTME: Main package initialization for the spark-guard library.
# ABOUTME: Exports version information from the installed distribution metadata.

from importlib.metadata import version

__version__ = version("spark-guard")
