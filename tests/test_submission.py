from unittest.mock import MagicMock

import pytest

from survey_backend.contract import AnalyticsContract
from survey_backend.fhevm import FHEVMClient
from survey_backend.submission import DEFAULT_AGE, DEFAULT_GLUCOSE, SubmissionWorkflow, age_value, glucose_value

from tests.conftest import ALICE_SURVEY, WALLET


@pytest.fixture
def contract():
    contract = MagicMock(spec=AnalyticsContract)
    contract.submit_patient_data.return_value = "0xtxhash"
    return contract


def test_glucose_value_lookup():
    assert glucose_value({"bloodGlucose": "130"}) == "130"
    assert glucose_value({"bloodSugar": 95}) == 95
    assert glucose_value({"bloodGlucose": "", "bloodSugar": ""}) == DEFAULT_GLUCOSE
    assert glucose_value({}) == DEFAULT_GLUCOSE


def test_submission_without_contract(service):
    submission = SubmissionWorkflow(service).submit_survey(WALLET, ALICE_SURVEY)

    assert submission.record.success
    assert submission.encrypted.original_value == DEFAULT_GLUCOSE * 10
    assert submission.transaction_hash is None
    assert submission.chain_error is None


def test_submission_registers_cid_on_chain(service, contract):
    workflow = SubmissionWorkflow(service, encryptor=FHEVMClient(), contract=contract)
    survey = {"dataType": "blood-glucose", "bloodGlucose": "120.5", "notes": "fasting"}

    submission = workflow.submit_survey(WALLET, survey)

    assert submission.transaction_hash == "0xtxhash"
    contract.submit_patient_data.assert_called_once_with(
        submission.encrypted.data,
        submission.encrypted.proof,
        submission.record.address,
        "2345-7",
    )
    assert submission.encrypted.original_value == 1205


def test_chain_failure_keeps_upload(service, contract):
    contract.submit_patient_data.side_effect = RuntimeError("insufficient funds")
    workflow = SubmissionWorkflow(service, contract=contract)

    submission = workflow.submit_survey(WALLET, ALICE_SURVEY)

    assert submission.record.success
    assert submission.chain_error == "insufficient funds"
    assert service.records.get(submission.record.patient_id) == submission.record.address


def test_out_of_range_glucose_skips_chain(service, contract):
    workflow = SubmissionWorkflow(service, contract=contract)

    submission = workflow.submit_survey(WALLET, {"dataType": "blood-glucose", "bloodGlucose": 5})

    assert submission.record.success
    assert submission.chain_error
    contract.submit_patient_data.assert_not_called()


def test_record_failure_stops_workflow(service, contract):
    workflow = SubmissionWorkflow(service, contract=contract)

    submission = workflow.submit_survey(WALLET, {**ALICE_SURVEY, "tags": {"a"}})

    assert not submission.record.success
    assert submission.encrypted is None
    contract.submit_patient_data.assert_not_called()


def test_comprehensive_survey_registers_age(service, contract):
    workflow = SubmissionWorkflow(service, contract=contract)

    submission = workflow.submit_survey(WALLET, {"dataType": "comprehensive-survey", "age": 47, "bloodGlucose": 140})

    assert submission.transaction_hash == "0xtxhash"
    assert submission.encrypted.original_value == 47


def test_comprehensive_survey_without_age(service):
    submission = SubmissionWorkflow(service).submit_survey(WALLET, {"dataType": "comprehensive-survey"})
    assert submission.encrypted.original_value == DEFAULT_AGE


def test_age_value_lookup():
    assert age_value({"age": "52"}) == 52
    assert age_value({"age": 0}) == DEFAULT_AGE
    assert age_value({}) == DEFAULT_AGE
