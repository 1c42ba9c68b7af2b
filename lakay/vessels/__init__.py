"""
Vessel styles and images kept in key/value storage with backup recovery.
"""

from .storage import FileStorage, KeyValueStorage, MemoryStorage
from .vessel_data import (
    VESSEL_IMAGES_STORAGE_KEY,
    VESSEL_STORAGE_KEY,
    VesselStore,
    vessel_data_changed,
    vessel_image_error,
)

__all__ = [
    "FileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "VesselStore",
    "VESSEL_STORAGE_KEY",
    "VESSEL_IMAGES_STORAGE_KEY",
    "vessel_data_changed",
    "vessel_image_error",
]
