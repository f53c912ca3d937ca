import threading
from collections import OrderedDict
from typing import List, Optional

from config.settings import settings
from schemas.marksheets import BatchAnalysis
from services.exceptions import BatchNotFound


# ================= STATE MANAGEMENT =================
# In-memory store, lost on restart
class BatchStore:
    def __init__(self, limit: Optional[int] = None):
        self.limit = settings.BATCH_STORE_LIMIT if limit is None else limit
        self._batches: "OrderedDict[str, BatchAnalysis]" = OrderedDict()
        self._lock = threading.Lock()

    def save(self, batch: BatchAnalysis) -> BatchAnalysis:
        with self._lock:
            self._batches[batch.batch_id] = batch
            self._batches.move_to_end(batch.batch_id)
            while len(self._batches) > max(1, self.limit):
                self._batches.popitem(last=False)
        return batch

    def get(self, batch_id: str) -> BatchAnalysis:
        with self._lock:
            batch = self._batches.get(batch_id)
        if batch is None:
            raise BatchNotFound(batch_id)
        return batch

    def all(self) -> List[BatchAnalysis]:
        with self._lock:
            return list(self._batches.values())

    def clear(self):
        with self._lock:
            self._batches.clear()


batch_store = BatchStore()
