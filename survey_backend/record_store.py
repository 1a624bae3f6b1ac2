"""
Record store mapping patient IDs to the CID of their current record.

The mapping is loaded from local storage when the store is created and every
mutation is written back immediately. Only the latest CID per patient is
kept; older uploads may still exist on IPFS but are no longer indexed.
"""

import json
import logging
from typing import Dict, List, Optional, Tuple

from survey_backend.constants import PATIENT_RECORDS_KEY
from survey_backend.local_storage import LocalStorage

logger = logging.getLogger(__name__)


class RecordStore:
    """Persisted patient ID -> CID index"""

    def __init__(self, storage: LocalStorage, key: str = PATIENT_RECORDS_KEY):
        self.storage = storage
        self.key = key
        self.records: Dict[str, str] = self.load()

    def load(self) -> Dict[str, str]:
        """Load the index from local storage. Missing or corrupt data yields an empty index."""
        try:
            saved = self.storage.get_item(self.key)
            if saved is None:
                logger.info("No saved patient records, starting with an empty index")
                return {}

            records = json.loads(saved)
            if not isinstance(records, dict):
                logger.error(f"Ignoring patient records of unexpected type {type(records).__name__}")
                return {}

            records = {str(k): str(v) for k, v in records.items()}
            logger.info(f"Loaded {len(records)} patient records")
            return records
        except Exception as e:
            logger.error(f"Error loading patient records: {str(e)}")
            return {}

    def save(self) -> None:
        """Persist the full index. Failures are logged, not raised."""
        try:
            self.storage.set_item(self.key, json.dumps(self.records))
        except Exception as e:
            logger.error(f"Error saving patient records: {str(e)}")

    def get(self, patient_id: str) -> Optional[str]:
        return self.records.get(patient_id)

    def set(self, patient_id: str, cid: str) -> Optional[str]:
        """
        Point patient_id at cid, replacing any previous entry.

        Returns:
            The previous CID for this patient, or None
        """
        previous = self.records.get(patient_id)
        self.records[patient_id] = cid
        self.save()
        return previous

    def delete(self, patient_id: str) -> bool:
        """Remove the entry for patient_id, returning True if it existed"""
        if patient_id not in self.records:
            return False
        del self.records[patient_id]
        self.save()
        return True

    def list_all(self) -> List[Tuple[str, str]]:
        return list(self.records.items())

    def __len__(self) -> int:
        return len(self.records)
