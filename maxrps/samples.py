from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

SAMPLE_COLUMNS = ["concurrency", "throughput", "completed", "errors"]


@dataclass(frozen=True)
class Sample:
    """Observed throughput (requests/second) at one concurrency level."""

    concurrency: int
    throughput: float
    completed: int = 0
    errors: int = 0

    def __post_init__(self) -> None:
        if self.concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {self.concurrency}")
        if self.throughput < 0:
            raise ValueError(f"throughput must be >= 0, got {self.throughput}")


def samples_to_arrays(samples: Sequence[Sample]) -> tuple[np.ndarray, np.ndarray]:
    concurrency = np.array([s.concurrency for s in samples], dtype=np.float64)
    throughput = np.array([s.throughput for s in samples], dtype=np.float64)
    return concurrency, throughput


def samples_to_dataframe(samples: Iterable[Sample]) -> pd.DataFrame:
    rows = [asdict(sample) for sample in samples]
    if not rows:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)
    return pd.DataFrame(rows, columns=SAMPLE_COLUMNS)


def write_samples_csv(samples: Iterable[Sample], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    samples_to_dataframe(samples).to_csv(path, index=False)
    return path


__all__ = [
    "SAMPLE_COLUMNS",
    "Sample",
    "samples_to_arrays",
    "samples_to_dataframe",
    "write_samples_csv",
]
