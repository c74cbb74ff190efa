"""Environment-driven switches, read once at import."""

from __future__ import annotations

import os
from typing import Final

import jax

ENABLE_X64: Final[bool] = os.environ.get("PRECISION_JAX_DISABLE_X64", "0") != "1"
DEFAULT_SEED: Final[int] = int(os.environ.get("PRECISION_JAX_SEED", "0"))
USE_INT_POWER_FAST_PATH: Final[bool] = os.environ.get("PRECISION_JAX_DISABLE_INT_POWER_FAST_PATH", "0") != "1"
USE_EXACT_FAST_PATH: Final[bool] = os.environ.get("PRECISION_JAX_DISABLE_EXACT_FAST_PATH", "0") != "1"
COMPILE_CACHE_MAX: Final[int] = max(1, int(os.environ.get("PRECISION_JAX_COMPILE_CACHE_MAX", "256")))

# Untyped Python floats must mean float64 for the float64 target to exist.
if ENABLE_X64:
    jax.config.update("jax_enable_x64", True)
