import pytest

from survey_backend.ipfs import ContentStore, FilebaseConfig, RealMode, SimulatedMode
from survey_backend.local_storage import LocalStorage
from survey_backend.record_store import RecordStore
from survey_backend.service import PatientRecordService

WALLET = "0xABC"

ALICE_SURVEY = {
    "name": "Alice",
    "idNumber": "123",
    "age": 40,
}


@pytest.fixture
def storage(tmp_path):
    return LocalStorage(str(tmp_path / "local_storage"))


@pytest.fixture
def simulated_store(storage):
    return ContentStore(SimulatedMode(), storage)


@pytest.fixture
def filebase_config():
    return FilebaseConfig(
        access_key="test-access-key",
        secret_key="test-secret-key",
        bucket_name="test-bucket",
        rpc_url="https://rpc.example.test/api/v0",
        gateway_url="https://gateway.example.test/ipfs",
        timeout=5,
    )


@pytest.fixture
def real_mode(filebase_config):
    return RealMode(config=filebase_config)


@pytest.fixture
def service(storage, simulated_store):
    return PatientRecordService(RecordStore(storage), simulated_store)
