"""Probabilistic schema inference for JSON and BSON documents."""

from .config import ModelConfig
from .errors import DecodeError, DecodeReason, EmptyModelError, SchemaError
from .kinds import Kind, classify
from .model import SchemaModel, build_model
from .snapshot import FieldView, KindView, SchemaSnapshot

__all__ = [
    "DecodeError",
    "DecodeReason",
    "EmptyModelError",
    "FieldView",
    "Kind",
    "KindView",
    "ModelConfig",
    "SchemaError",
    "SchemaModel",
    "SchemaSnapshot",
    "build_model",
    "classify",
]
