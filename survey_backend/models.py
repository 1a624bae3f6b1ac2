from pydantic import BaseModel, ConfigDict
from typing import ClassVar, Dict, List, Optional, Any, Literal

from survey_backend.constants import (
    DATA_TYPE_COMPREHENSIVE,
    DATA_TYPE_GLUCOSE,
    DATA_TYPE_SURVEY,
    RECORD_VERSION,
)


def template_string(value: Any) -> str:
    """Render a JSON scalar the way a JS template literal does"""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class SurveyData(BaseModel):
    """Base model for survey payloads submitted by the patient forms.

    Fields are untyped so any JSON payload validates unchanged; the variant
    only decides how the patient identity is derived.
    """
    model_config = ConfigDict(extra="allow")

    name: Any = None
    idNumber: Any = None
    dataType: Any = None

    # Tag appended to the identity for survey types other than the basic one
    identity_tag: ClassVar[Optional[str]] = None

    def identity_parts(self, wallet_address: str) -> List[str]:
        """Fields the patient ID is derived from. Absent fields are skipped."""
        parts = [wallet_address]
        for value in (self.name, self.idNumber):
            if value is not None:
                parts.append(template_string(value))
        if self.identity_tag:
            parts.append(self.identity_tag)
        return parts

    def identity(self, wallet_address: str) -> str:
        return "_".join(self.identity_parts(wallet_address))


class BasicSurvey(SurveyData):
    """Diabetes survey (or any untagged payload)"""


class ComprehensiveSurvey(SurveyData):
    """Four-module comprehensive questionnaire"""
    identity_tag: ClassVar[Optional[str]] = DATA_TYPE_COMPREHENSIVE

    age: Any = None


class GlucoseReading(SurveyData):
    """Single blood glucose measurement"""
    identity_tag: ClassVar[Optional[str]] = DATA_TYPE_GLUCOSE

    bloodGlucose: Any = None
    timestamp: Any = None
    notes: Any = None


SURVEY_TYPES = {
    DATA_TYPE_SURVEY: BasicSurvey,
    DATA_TYPE_COMPREHENSIVE: ComprehensiveSurvey,
    DATA_TYPE_GLUCOSE: GlucoseReading,
}


def parse_survey(data: Dict[str, Any]) -> SurveyData:
    """Pick the survey variant from the payload's dataType tag"""
    data_type = data.get("dataType")
    model = SURVEY_TYPES.get(data_type, BasicSurvey) if isinstance(data_type, str) else BasicSurvey
    return model.model_validate(data)


class PatientRecord(BaseModel):
    """Full record uploaded for a patient"""
    patientId: str
    walletAddress: str
    surveyData: Dict[str, Any]
    timestamp: str
    version: int = RECORD_VERSION


class SubmitResult(BaseModel):
    """Outcome of a record submission"""
    success: bool
    patient_id: Optional[str] = None
    address: Optional[str] = None
    previous_address: Optional[str] = None
    confirmation_url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None


class RetrieveResult(BaseModel):
    """Outcome of a record lookup"""
    success: bool
    data: Optional[Dict[str, Any]] = None
    address: Optional[str] = None
    confirmation_url: Optional[str] = None
    error: Optional[str] = None


class PatientRecordEntry(BaseModel):
    """Entry of the patient record index"""
    patient_id: str
    address: str
    url: str


class ServiceStatus(BaseModel):
    """Storage backend status"""
    mode: Literal["real", "simulated"]
    bucket_name: Optional[str] = None
    gateway_url: str
    record_count: int


class EncryptedValue(BaseModel):
    """Encrypted uint32 value with its input proof"""
    data: str
    proof: str
    is_simulated: bool = True
    original_value: Optional[int] = None
    timestamp: int


class SubmitRecordRequest(BaseModel):
    """Request body for record submission"""
    wallet_address: str
    survey_data: Dict[str, Any]


class SurveySubmission(BaseModel):
    """Outcome of the survey -> IPFS -> chain workflow"""
    record: SubmitResult
    encrypted: Optional[EncryptedValue] = None
    transaction_hash: Optional[str] = None
    chain_error: Optional[str] = None


class ContractStats(BaseModel):
    """Aggregate counters from the analytics contract"""
    total_patients: int
    total_submissions: int
    total_requests: int


class AnalysisRequest(BaseModel):
    """Analysis request as stored on-chain"""
    researcher: str
    timestamp: int
    completed: bool
    result_cid: str
    fee: int
