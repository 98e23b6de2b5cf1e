"""Package initializer for Sheet Tracker.

This package exposes the Streamlit entry point via ``main`` so that
``python -m sheet_tracker`` can launch the UI directly, alongside the
engine's public building blocks.
"""

from .builder import ArtifactBuilder  # noqa: F401
from .config import Settings  # noqa: F401
from .legit_guard import Signer  # noqa: F401
from .models import ColumnSpec, GenerationRequest  # noqa: F401
from .service import ReviewService  # noqa: F401
from .ui_app import main  # noqa: F401


__all__ = [
    "ArtifactBuilder",
    "ColumnSpec",
    "GenerationRequest",
    "ReviewService",
    "Settings",
    "Signer",
    "main",
]
