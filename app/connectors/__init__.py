"""
app/connectors package marker.
"""

from app.connectors.base import BaseConnector, ConnectorRequestError
from app.connectors.photo_pipeline import HTTPPhotoPipeline, get_photo_pipeline

__all__ = [
    "BaseConnector",
    "ConnectorRequestError",
    "HTTPPhotoPipeline",
    "get_photo_pipeline",
]
