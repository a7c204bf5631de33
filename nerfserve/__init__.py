"""Video-to-NeRF web service: scene submission and chunked artifact retrieval."""

__version__ = "0.1.0"
