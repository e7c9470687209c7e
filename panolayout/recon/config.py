"""Configuration helpers for the reconstruction stages."""

from __future__ import annotations

import copy

from .model import ReconstructionConfig

_RECONSTRUCTION_CONFIG = ReconstructionConfig()


def get_reconstruction_config() -> ReconstructionConfig:
    return copy.deepcopy(_RECONSTRUCTION_CONFIG)


def set_reconstruction_config(config: ReconstructionConfig) -> None:
    global _RECONSTRUCTION_CONFIG
    _RECONSTRUCTION_CONFIG = copy.deepcopy(config)
