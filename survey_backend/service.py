"""
Patient record service.

Derives patient IDs from survey submissions, encodes and uploads the record,
and keeps the patient ID -> CID index current. Service methods never raise;
failures are returned as result models so callers can render them directly.
"""

import datetime
import logging
from typing import Any, Callable, Dict, List

from survey_backend.codec import decode_record, encode_record
from survey_backend.constants import RECORD_TYPE, RECORD_VERSION
from survey_backend.hashing import generate_hash
from survey_backend.ipfs import ContentStore
from survey_backend.models import (
    PatientRecord,
    PatientRecordEntry,
    RetrieveResult,
    ServiceStatus,
    SubmitResult,
    SurveyData,
    parse_survey,
)
from survey_backend.record_store import RecordStore

logger = logging.getLogger(__name__)


def iso_timestamp() -> str:
    """Current UTC time as ISO-8601 with milliseconds, e.g. 2025-01-01T00:00:00.000Z"""
    now = datetime.datetime.now(datetime.timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class PatientRecordService:
    """Submit and retrieve patient records through a content store"""

    def __init__(
        self,
        records: RecordStore,
        content: ContentStore,
        now: Callable[[], str] = iso_timestamp,
    ):
        self.records = records
        self.content = content
        self.now = now

    def generate_patient_id(self, wallet_address: str, survey: SurveyData) -> str:
        return generate_hash(survey.identity(wallet_address))

    def submit(self, wallet_address: str, survey_data: Dict[str, Any]) -> SubmitResult:
        """
        Upload a survey submission as the patient's current record.

        Args:
            wallet_address: The submitting wallet address
            survey_data: The survey payload from the form

        Returns:
            SubmitResult: patient ID, new CID and the CID it replaced, or an error
        """
        try:
            logger.info(f"Submitting patient record for {wallet_address}")
            survey = parse_survey(survey_data)
            patient_id = self.generate_patient_id(wallet_address, survey)

            record = PatientRecord(
                patientId=patient_id,
                walletAddress=wallet_address,
                surveyData=dict(survey_data),
                timestamp=self.now(),
                version=RECORD_VERSION,
            )

            encrypted_data = encode_record(record.model_dump())

            cid = self.content.upload({
                "encryptedData": encrypted_data,
                "patientId": patient_id,
                "timestamp": record.timestamp,
                "metadata": {
                    "type": RECORD_TYPE,
                    "encrypted": True,
                    "version": RECORD_VERSION,
                },
            })
        except Exception as e:
            logger.error(f"Error submitting patient record: {str(e)}")
            return SubmitResult(success=False, error=str(e))

        previous = self.records.set(patient_id, cid)
        if previous:
            logger.info(f"Replaced record for patient {patient_id}: {previous} -> {cid}")

        logger.info(f"Patient record submitted: {patient_id} -> {cid}")
        return SubmitResult(
            success=True,
            patient_id=patient_id,
            address=cid,
            previous_address=previous,
            confirmation_url=self.content.url_for(cid),
            message="Record updated on IPFS" if previous else "Record uploaded to IPFS",
        )

    def retrieve(self, patient_id: str) -> RetrieveResult:
        """
        Fetch and decode the current record of a patient.

        Returns:
            RetrieveResult: the decoded record, or an error when there is no
            record on file or it cannot be fetched or decoded
        """
        cid = self.records.get(patient_id)
        if not cid:
            return RetrieveResult(success=False, error=f"No record found for patient {patient_id}")

        try:
            logger.info(f"Retrieving record for patient {patient_id} from {cid}")
            document = self.content.fetch(cid)
            if "encryptedData" not in document:
                raise ValueError(f"IPFS object {cid} has no encrypted data")
            data = decode_record(document["encryptedData"])
            if not isinstance(data, dict):
                raise ValueError(f"IPFS object {cid} does not hold a patient record")
        except Exception as e:
            logger.error(f"Error retrieving patient record: {str(e)}")
            return RetrieveResult(success=False, address=cid, error=str(e))

        return RetrieveResult(
            success=True,
            data=data,
            address=cid,
            confirmation_url=self.content.url_for(cid),
        )

    def list_records(self) -> List[PatientRecordEntry]:
        return [
            PatientRecordEntry(patient_id=patient_id, address=cid, url=self.content.url_for(cid))
            for patient_id, cid in sorted(self.records.list_all())
        ]

    def delete_record(self, patient_id: str) -> bool:
        deleted = self.records.delete(patient_id)
        if deleted:
            logger.info(f"Deleted record index entry for patient {patient_id}")
        return deleted

    def status(self) -> ServiceStatus:
        return ServiceStatus(
            mode="real" if self.content.is_real else "simulated",
            bucket_name=self.content.bucket_name,
            gateway_url=self.content.gateway_url,
            record_count=len(self.records),
        )
