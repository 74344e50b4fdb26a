import random
import time

import numpy as np
import questionary
import torch
from tqdm import tqdm

from conv_methods import AVAILABLE_BACKENDS
from conv_module import Convolution2D
from conv_module.hooks import PHASES, PhaseTimer

SETTINGS = {
    "input_size": 64,
    "input_channels": 32,
    "num_filters": 64,
    "kernel_size": 3,
    "iterations": 50,
    "seed": 42,
}


def set_seed(seed: int):
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


def get_user_choices() -> tuple[str, str]:
    selected_backend_name = questionary.select(
        "Select the GEMM backend to benchmark:",
        choices=list(AVAILABLE_BACKENDS.keys()),
    ).ask()
    if selected_backend_name is None:
        print("Cancelled.")
        exit()

    border_mode = questionary.select("Border mode:", choices=["valid", "same"], default="same").ask()
    if border_mode is None:
        print("Cancelled.")
        exit()

    return AVAILABLE_BACKENDS[selected_backend_name]["short_name"], border_mode


def build_layer(backend: str, border_mode: str, weights: list[torch.Tensor], hook=None) -> Convolution2D:
    layer = Convolution2D(
        num_filters=SETTINGS["num_filters"],
        kernel_rows=SETTINGS["kernel_size"],
        kernel_cols=SETTINGS["kernel_size"],
        activation="relu",
        border_mode=border_mode,
        backend=backend,
        hook=hook,
        name="benchmark",
    )
    layer.set_weights(weights)
    return layer


def benchmark(backend: str, border_mode: str) -> None:
    set_seed(SETTINGS["seed"])
    size, channels, num_filters, kernel_size = (
        SETTINGS["input_size"],
        SETTINGS["input_channels"],
        SETTINGS["num_filters"],
        SETTINGS["kernel_size"],
    )
    weights = [torch.randn(kernel_size, kernel_size, channels, num_filters), torch.randn(num_filters)]
    x = torch.randn(size, size, channels)

    timer = PhaseTimer()
    layer = build_layer(backend, border_mode, weights, hook=timer)
    reference = build_layer("reference", border_mode, weights)
    print(f"\n{layer}")

    # warm-up
    layer(x)
    timer.reset()

    start_time = time.time()
    for _ in tqdm(range(SETTINGS["iterations"]), desc="⏱️ Benchmark", unit="call", dynamic_ncols=True):
        output = layer(x)
    total_time = time.time() - start_time

    max_diff = (output - reference(x)).abs().max().item()

    print("\n" + "=" * 40)
    print("📊 Benchmark results")
    print("=" * 40)
    print(f"Backend:           {backend}")
    print(f"Input:             {size}x{size}x{channels}")
    print(f"Output:            {tuple(output.shape)}")
    print("-" * 40)
    for phase in PHASES:
        if timer.calls[phase]:
            print(f"{phase:<18} {timer.totals[phase] / timer.calls[phase] * 1000:8.3f} ms")
    print("-" * 40)
    print(f"Mean per call:     {total_time / SETTINGS['iterations'] * 1000:.3f} ms")
    print(f"Max diff vs ref:   {max_diff:.3e}")
    print("=" * 40)


if __name__ == "__main__":
    selected_backend, selected_border_mode = get_user_choices()
    benchmark(selected_backend, selected_border_mode)
