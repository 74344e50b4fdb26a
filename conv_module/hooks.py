import logging
import time
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# hook(layer_name, phase, elapsed_seconds)
PhaseHook = Callable[[str, str, float], None]

PHASES = ("calc_output_shape", "pad_input", "im2col", "w2row", "gemm", "assemble_output", "activation")


def log_phase(layer_name: str, phase: str, elapsed: float) -> None:
    logger.debug("%s %s: %.3f ms", layer_name, phase, elapsed * 1000.0)


class PhaseTimer:
    """
    Hook that accumulates elapsed time per phase.

    >>> timer = PhaseTimer()
    >>> layer = Convolution2D(num_filters=8, hook=timer)
    """

    def __init__(self) -> None:
        self.totals: dict[str, float] = defaultdict(float)
        self.calls: dict[str, int] = defaultdict(int)

    def __call__(self, layer_name: str, phase: str, elapsed: float) -> None:
        self.totals[phase] += elapsed
        self.calls[phase] += 1

    def reset(self) -> None:
        self.totals.clear()
        self.calls.clear()


@contextmanager
def timed_phase(hook: PhaseHook | None, layer_name: str, phase: str) -> Iterator[None]:
    if hook is None:
        yield
        return
    start = time.perf_counter()
    yield
    hook(layer_name, phase, time.perf_counter() - start)
