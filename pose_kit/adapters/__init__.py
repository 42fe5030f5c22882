"""
Model adapters: one per pose model family.
"""

from __future__ import annotations

from typing import Dict

from .base import PoseModelAdapter
from .blazepose import BlazePoseAdapter
from .movenet import MoveNetAdapter
from .yolo_pose import YoloPoseAdapter


def default_adapters() -> Dict[str, PoseModelAdapter]:
    adapters = (BlazePoseAdapter(), MoveNetAdapter(), YoloPoseAdapter())
    return {a.model_id: a for a in adapters}


__all__ = [
    "PoseModelAdapter",
    "BlazePoseAdapter",
    "MoveNetAdapter",
    "YoloPoseAdapter",
    "default_adapters",
]
