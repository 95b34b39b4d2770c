"""
Compute backend management.

Provides:
- BLAS thread limits for the numeric kernels (``n_cores``)
- CuPy/NumPy backend abstraction for the PANDA matrix products
"""

from __future__ import annotations

import gc
from contextlib import contextmanager
from typing import Any, Generator, Literal, Optional

import numpy as np
from threadpoolctl import threadpool_limits

# Global backend state
_compute_backend: Optional["ComputeBackend"] = None


def check_cupy_available() -> tuple[bool, Optional[str]]:
    """
    Check if CuPy is available and functional.

    Returns:
        Tuple of (is_available, error_message)
    """
    try:
        import cupy as cp

        _ = cp.array([1.0])
        cp.cuda.Device().synchronize()
        return True, None
    except ImportError:
        return False, "CuPy not installed. Install with: pip install scorpion-pipeline[gpu]"
    except Exception as e:
        return False, f"GPU initialization failed: {e}"


class ComputeBackend:
    """
    Owns the numeric resources used by one pipeline run.

    Matrix products are the only parallel work in the pipeline; they are
    delegated to BLAS (or CuPy), and this class only bounds how many
    threads BLAS may use.

    Example:
        >>> backend = ComputeBackend(n_cores=4)
        >>> with backend.limits():
        ...     product = backend.xp.asarray(a) @ b
    """

    def __init__(
        self,
        n_cores: int = 1,
        use_gpu: bool = False,
        device_id: int = 0,
    ):
        """
        Initialize compute backend.

        Args:
            n_cores: Maximum BLAS threads.
            use_gpu: Use CuPy when available, otherwise fall back to NumPy.
            device_id: CuPy device to run on.
        """
        self.n_cores = max(1, int(n_cores))
        self.device_id = device_id
        self._cp = None
        self._gpu_error: Optional[str] = None

        if use_gpu:
            available, error = check_cupy_available()
            if available:
                import cupy as cp

                self._cp = cp
            else:
                self._gpu_error = error

    @property
    def is_gpu_available(self) -> bool:
        """Check if GPU is in use."""
        return self._cp is not None

    @property
    def backend(self) -> Literal["cupy", "numpy"]:
        """Get current backend name."""
        return "cupy" if self.is_gpu_available else "numpy"

    @property
    def gpu_error(self) -> Optional[str]:
        """Why a requested GPU could not be used, if it was requested."""
        return self._gpu_error

    @property
    def xp(self) -> Any:
        """Get array module (cupy or numpy)."""
        if self.is_gpu_available:
            return self._cp
        return np

    @contextmanager
    def limits(self) -> Generator[None, None, None]:
        """Bound BLAS threads to ``n_cores`` for the enclosed block."""
        if self.is_gpu_available:
            with self._cp.cuda.Device(self.device_id):
                yield
            return
        with threadpool_limits(limits=self.n_cores, user_api="blas"):
            yield

    def to_device(self, arr: np.ndarray) -> Any:
        """
        Transfer array to the compute device.

        Args:
            arr: NumPy array to transfer.

        Returns:
            CuPy array on GPU, or a float64 NumPy array.
        """
        if not self.is_gpu_available:
            return np.asarray(arr, dtype=np.float64)
        with self._cp.cuda.Device(self.device_id):
            return self._cp.asarray(arr, dtype=self._cp.float64)

    def to_cpu(self, arr: Any) -> np.ndarray:
        """
        Transfer array to CPU.

        Args:
            arr: Array to transfer (CuPy or NumPy).

        Returns:
            NumPy array on CPU.
        """
        if hasattr(arr, "get"):
            return arr.get()
        return np.asarray(arr)

    def free_memory(self) -> None:
        """Release pooled GPU memory."""
        if not self.is_gpu_available:
            return
        with self._cp.cuda.Device(self.device_id):
            self._cp.get_default_memory_pool().free_all_blocks()
            self._cp.get_default_pinned_memory_pool().free_all_blocks()
        gc.collect()


def get_compute_backend() -> ComputeBackend:
    """
    Get the global compute backend instance.

    Creates a single-threaded NumPy backend on first call.
    """
    global _compute_backend
    if _compute_backend is None:
        _compute_backend = ComputeBackend()
    return _compute_backend
