from .base import ReferenceGemm

__all__ = ["ReferenceGemm"]
