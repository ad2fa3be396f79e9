"""
flowstore - namespaced, path-safe file storage for a workflow engine.
"""

__version__ = "0.1.0"
