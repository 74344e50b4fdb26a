from typing import Any

from conv_module.base import MatMulBackend
from conv_module.cpu.base import ReferenceGemm
from conv_module.cuda.base import AcceleratedGemm
from conv_module.errors import ConfigurationError

AVAILABLE_BACKENDS: dict[str, dict[str, Any]] = {
    "CPU Reference": {"class": ReferenceGemm, "short_name": "reference"},
    "Accelerated": {"class": AcceleratedGemm, "short_name": "accelerated", "args": {"device": None}},
}


def create_backend(short_name: str, **kwargs: Any) -> MatMulBackend:
    for info in AVAILABLE_BACKENDS.values():
        if info["short_name"] == short_name:
            args = {**info.get("args", {}), **kwargs}
            return info["class"](**args)

    choices = ", ".join(info["short_name"] for info in AVAILABLE_BACKENDS.values())
    raise ConfigurationError(f"Unknown backend {short_name!r}, expected one of {choices}")
