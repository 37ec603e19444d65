from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

STORAGE_BACKENDS = ("local", "memory", "firestore")
DEFAULT_SECRET_KEY = "development-secret-change-me"


def load_config(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    """Read application settings from environment variables."""

    env = os.environ if environ is None else environ

    backend = env.get("RECIPEBOX_STORAGE", "local").strip().lower()
    if backend not in STORAGE_BACKENDS:
        raise RuntimeError(
            f"Unknown RECIPEBOX_STORAGE '{backend}'. Choose one of: {', '.join(STORAGE_BACKENDS)}."
        )

    return {
        "SECRET_KEY": env.get("FLASK_SECRET_KEY", DEFAULT_SECRET_KEY),
        "RECIPEBOX_STORAGE": backend,
        "RECIPEBOX_DATA_DIR": env.get("RECIPEBOX_DATA_DIR"),
        "RECIPEBOX_LOG_LEVEL": env.get("RECIPEBOX_LOG_LEVEL", "INFO").upper(),
        "GCP_PROJECT": env.get("GCP_PROJECT"),
        "RECIPES_COLLECTION": env.get("RECIPES_COLLECTION", "recipes"),
        "GCS_BUCKET": env.get("GCS_BUCKET"),
    }


__all__ = ["STORAGE_BACKENDS", "load_config"]
