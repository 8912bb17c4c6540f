# qhybrid/cache.py

"""
Append-only memoization of expectation-value evaluations.

The cache is the single source of truth for what has been executed during a
driver's lifetime: it guarantees that each distinct parameter vector reaches
the external executor at most once and that history queries see records in
the order they were first evaluated.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import CacheIntegrityError
from .operator import ObservableTerm, frozen_term_values
from .parameters import ParameterVector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationRecord:
    params: ParameterVector
    energy: float
    term_values: Mapping[ObservableTerm, float]
    sequence: int
    timestamp: float


class EvaluationCache:
    """
    Insertion-ordered mapping of ParameterVector -> EvaluationRecord.

    Writes come from the evaluator on the run's own thread; reads may come
    from any thread and always return snapshots taken under the lock.
    """

    def __init__(self):
        self._records: Dict[ParameterVector, EvaluationRecord] = {}
        self._lock = threading.Lock()

    def lookup(self, params: ParameterVector) -> Optional[EvaluationRecord]:
        with self._lock:
            return self._records.get(params)

    def insert(self, params: ParameterVector, energy: float,
               term_values: Mapping[ObservableTerm, float]) -> EvaluationRecord:
        """
        Stores a new record.

        Raises:
            CacheIntegrityError: If ``params`` has already been recorded.
        """
        with self._lock:
            if params in self._records:
                raise CacheIntegrityError(
                    f"Parameter vector {list(params)} has already been evaluated; "
                    "the evaluator must consult the cache before executing."
                )
            record = EvaluationRecord(
                params=params,
                energy=float(energy),
                term_values=frozen_term_values(term_values),
                sequence=len(self._records),
                timestamp=time.time(),
            )
            self._records[params] = record
        logger.debug(f"[CACHE] #{record.sequence} {list(params)} -> {record.energy:.10f}")
        return record

    def all_records_in_order(self) -> List[EvaluationRecord]:
        with self._lock:
            return list(self._records.values())

    def unique_parameter_vectors(self) -> List[ParameterVector]:
        with self._lock:
            return list(self._records.keys())

    def unique_energies_with_params(self) -> List[Tuple[float, ParameterVector]]:
        """(energy, params) pairs in first-seen order, not sorted by energy."""
        with self._lock:
            return [(r.energy, r.params) for r in self._records.values()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, params) -> bool:
        with self._lock:
            return params in self._records
