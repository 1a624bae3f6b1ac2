import time
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from survey_backend.contract import AnalyticsContract
from survey_backend.fhevm import FHEVMClient
from survey_backend.ipfs import ContentStore, FilebaseConfig, select_backend_mode
from survey_backend.local_storage import LocalStorage
from survey_backend.models import SubmitRecordRequest
from survey_backend.record_store import RecordStore
from survey_backend.service import PatientRecordService
from survey_backend.submission import SubmissionWorkflow

logger = logging.getLogger(__name__)


# Standard API response helpers
def success_response(data=None, message=None):
    """
    Create a standardized success response.

    Args:
        data: Optional data to include in the response
        message: Optional message to include in the response

    Returns:
        dict: A standardized success response
    """
    response = {"status": "success"}

    if data is not None:
        response["data"] = data

    if message is not None:
        response["message"] = message

    return response


def error_response(message, status_code=400):
    """
    Create a standardized error response and raise an HTTPException.

    Raises:
        HTTPException: With the specified status code and error details
    """
    raise HTTPException(
        status_code=status_code,
        detail={"status": "error", "error": message}
    )


def build_service(storage_dir: Optional[str] = None) -> PatientRecordService:
    """Build the record service from environment configuration"""
    storage = LocalStorage(storage_dir) if storage_dir else LocalStorage()
    mode = select_backend_mode(FilebaseConfig.from_env())
    return PatientRecordService(RecordStore(storage), ContentStore(mode, storage))


def create_app(
    service: PatientRecordService,
    contract: Optional[AnalyticsContract] = None,
    encryptor: Optional[FHEVMClient] = None,
) -> FastAPI:
    """Create the API around an already constructed record service"""
    app = FastAPI(title="Diabetes Survey Records API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    workflow = SubmissionWorkflow(service, encryptor=encryptor, contract=contract)
    app.state.service = service
    app.state.workflow = workflow

    @app.get("/health")
    @app.get("/api/health")
    async def health_check():
        """Health check endpoint"""
        return success_response(
            data={"timestamp": int(time.time())},
            message="Service is healthy"
        )

    @app.get("/api/ipfs/status")
    async def ipfs_status():
        """Report the storage backend mode and record count"""
        return success_response(data=service.status().model_dump())

    @app.post("/api/records/submit")
    async def submit_record(request: SubmitRecordRequest):
        """
        Upload a survey as the patient's current record.

        Returns:
            dict: patient ID, CID and the CID it replaced
        """
        if not request.wallet_address:
            error_response("wallet_address is required", 400)

        result = service.submit(request.wallet_address, request.survey_data)
        if not result.success:
            error_response(result.error, 502)

        return success_response(data=result.model_dump(), message=result.message)

    @app.get("/api/records/list")
    async def list_records():
        """List the current CID of every known patient"""
        records = [entry.model_dump() for entry in service.list_records()]
        return success_response(data={"records": records, "count": len(records)})

    @app.get("/api/records/{patient_id}")
    async def retrieve_record(patient_id: str):
        """Fetch and decode a patient's current record"""
        result = service.retrieve(patient_id)
        if not result.success:
            error_response(result.error, 404)
        return success_response(data=result.model_dump())

    @app.delete("/api/records/{patient_id}")
    async def delete_record(patient_id: str):
        """Remove a patient from the record index"""
        if not service.delete_record(patient_id):
            error_response(f"No record found for patient {patient_id}", 404)
        return success_response(message=f"Record for patient {patient_id} removed")

    @app.post("/api/survey/submit")
    async def submit_survey(request: SubmitRecordRequest):
        """Upload a survey to IPFS and register it with the analytics contract"""
        if not request.wallet_address:
            error_response("wallet_address is required", 400)

        submission = workflow.submit_survey(request.wallet_address, request.survey_data)
        if not submission.record.success:
            error_response(submission.record.error, 502)

        message = "Survey stored on IPFS"
        if submission.transaction_hash:
            message = "Survey stored on IPFS and submitted to the contract"
        elif submission.chain_error:
            message = f"Survey stored on IPFS, contract submission failed: {submission.chain_error}"

        return success_response(data=submission.model_dump(), message=message)

    @app.get("/api/contract/stats")
    async def contract_stats():
        """Aggregate submission statistics from the analytics contract"""
        if contract is None:
            error_response("Contract is not configured", 503)

        try:
            stats = contract.get_stats()
        except Exception as e:
            logger.error(f"Error loading contract stats: {str(e)}")
            error_response(str(e), 502)

        return success_response(data=stats.model_dump())

    return app


def create_default_app() -> FastAPI:
    """Application factory used by run_api.py"""
    return create_app(build_service(), contract=AnalyticsContract.from_env())
