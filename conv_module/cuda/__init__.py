from .base import AcceleratedGemm

__all__ = ["AcceleratedGemm"]
