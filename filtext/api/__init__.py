"""
REST API for filtext.
"""

from filtext.api.server import UploadAPI, create_app

__all__ = [
    "create_app",
    "UploadAPI",
]
