from .allocator import CollectionAllocator, Placement, VolumeAction, decide
from .volumes import (
    ANIMATED_CAPACITY,
    STATIC_CAPACITY,
    VolumeMetadata,
    capacity_for,
    collection_name,
    collection_title,
)

__all__ = [
    "ANIMATED_CAPACITY",
    "STATIC_CAPACITY",
    "CollectionAllocator",
    "Placement",
    "VolumeAction",
    "VolumeMetadata",
    "capacity_for",
    "collection_name",
    "collection_title",
    "decide",
]
