"""
Survey submission workflow: upload the record to IPFS, then register the
encrypted value and CID with the analytics contract.
"""

import logging
from typing import Any, Dict, Optional

from survey_backend.constants import DEFAULT_LOINC_CODE
from survey_backend.contract import AnalyticsContract
from survey_backend.fhevm import FHEVMClient
from survey_backend.models import ComprehensiveSurvey, EncryptedValue, SurveySubmission, parse_survey
from survey_backend.service import PatientRecordService

logger = logging.getLogger(__name__)

# Used when the survey carries no glucose reading
DEFAULT_GLUCOSE = 100
# Comprehensive surveys register the patient's age instead
DEFAULT_AGE = 25


def glucose_value(survey_data: Dict[str, Any]) -> Any:
    for field in ("bloodGlucose", "bloodSugar"):
        value = survey_data.get(field)
        if value not in (None, ""):
            return value
    return DEFAULT_GLUCOSE


def age_value(survey_data: Dict[str, Any]) -> int:
    age = survey_data.get("age")
    if age in (None, "", 0):
        return DEFAULT_AGE
    return int(float(age))


def encrypt_survey_value(encryptor: FHEVMClient, survey_data: Dict[str, Any]) -> EncryptedValue:
    """Encrypt the value registered on-chain for this kind of survey"""
    if isinstance(parse_survey(survey_data), ComprehensiveSurvey):
        return encryptor.encrypt_uint32(age_value(survey_data))
    return encryptor.encrypt_glucose(glucose_value(survey_data))


class SubmissionWorkflow:
    """Runs the record upload followed by the optional on-chain submission"""

    def __init__(
        self,
        service: PatientRecordService,
        encryptor: Optional[FHEVMClient] = None,
        contract: Optional[AnalyticsContract] = None,
        loinc_code: str = DEFAULT_LOINC_CODE,
    ):
        self.service = service
        self.encryptor = encryptor or FHEVMClient()
        self.contract = contract
        self.loinc_code = loinc_code

    def submit_survey(self, wallet_address: str, survey_data: Dict[str, Any]) -> SurveySubmission:
        record = self.service.submit(wallet_address, survey_data)
        if not record.success:
            return SurveySubmission(record=record)

        # The IPFS upload stands even if the chain step fails
        try:
            encrypted = encrypt_survey_value(self.encryptor, survey_data)
        except (TypeError, ValueError) as e:
            logger.error(f"Error encrypting survey value: {str(e)}")
            return SurveySubmission(record=record, chain_error=str(e))

        if self.contract is None:
            logger.info("No contract configured, skipping on-chain submission")
            return SurveySubmission(record=record, encrypted=encrypted)

        try:
            tx_hash = self.contract.submit_patient_data(
                encrypted.data,
                encrypted.proof,
                record.address,
                self.loinc_code,
            )
        except Exception as e:
            logger.error(f"Error submitting patient data to contract: {str(e)}")
            return SurveySubmission(record=record, encrypted=encrypted, chain_error=str(e))

        return SurveySubmission(record=record, encrypted=encrypted, transaction_hash=tx_hash)
