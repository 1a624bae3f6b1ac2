import base64
import json
from unittest.mock import MagicMock

import pytest
import requests

from survey_backend.constants import MOCK_CID_BODY_LENGTH, MOCK_CID_PREFIX, MOCK_OBJECT_PREFIX
from survey_backend.errors import ConfigurationError, FetchError, UploadError
from survey_backend.hashing import generate_hash
from survey_backend.ipfs import (
    ContentStore,
    FilebaseClient,
    FilebaseConfig,
    RealMode,
    SimulatedMode,
    select_backend_mode,
    simulated_cid,
)

DOCUMENT = {"encryptedData": "eyJhIjoxfQ==", "patientId": "abc", "timestamp": "2025-01-01T00:00:00.000Z"}


def response(status_code=200, payload=None, json_error=False):
    resp = MagicMock()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.reason = "OK" if resp.ok else "Error"
    resp.text = json.dumps(payload)
    if json_error:
        resp.json.side_effect = ValueError("Expecting value")
    else:
        resp.json.return_value = payload
    return resp


def assert_mock_cid(cid):
    assert cid.startswith(MOCK_CID_PREFIX)
    assert len(cid) == len(MOCK_CID_PREFIX) + MOCK_CID_BODY_LENGTH


# Backend mode selection

def test_missing_credentials_select_simulation():
    assert isinstance(select_backend_mode(FilebaseConfig()), SimulatedMode)


def test_placeholder_credentials_select_simulation():
    config = FilebaseConfig(access_key="YOUR_ACCESS_KEY", secret_key="YOUR_SECRET_KEY")
    with pytest.raises(ConfigurationError):
        config.require_credentials()
    assert isinstance(select_backend_mode(config), SimulatedMode)


def test_configured_credentials_select_real(filebase_config):
    mode = select_backend_mode(filebase_config)
    assert isinstance(mode, RealMode)
    assert mode.config.bucket_name == "test-bucket"


# Simulation mode

def test_simulated_cid_shape():
    cid = simulated_cid(DOCUMENT)
    assert_mock_cid(cid)
    assert cid == MOCK_CID_PREFIX + generate_hash(DOCUMENT).ljust(MOCK_CID_BODY_LENGTH, "0")


def test_simulated_upload_needs_no_network(storage):
    session = MagicMock()
    store = ContentStore(SimulatedMode(), storage, session=session)

    cid = store.upload(DOCUMENT)

    assert_mock_cid(cid)
    session.post.assert_not_called()
    assert store.fetch(cid) == DOCUMENT
    assert json.loads(storage.get_item(f"{MOCK_OBJECT_PREFIX}{cid}")) == DOCUMENT


def test_simulated_fetch_of_unknown_cid(simulated_store):
    with pytest.raises(FetchError):
        simulated_store.fetch("QmUnknown")


def test_simulated_fetch_of_unsafe_cid(simulated_store):
    with pytest.raises(FetchError):
        simulated_store.fetch("../patientRecords")


# Real mode

def test_client_upload_sends_bearer_token(filebase_config):
    session = MagicMock()
    session.post.return_value = response(payload={"Name": "f.json", "Hash": "bafyreal", "Size": "10"})
    client = FilebaseClient(filebase_config, session=session)

    result = client.upload("f.json", b"{}", "application/json")

    assert result == {
        "content_identifier": "bafyreal",
        "location": "https://gateway.example.test/ipfs/bafyreal",
    }
    args, kwargs = session.post.call_args
    assert args[0] == "https://rpc.example.test/api/v0/add"
    token = base64.b64encode(b"test-access-key:test-secret-key:test-bucket").decode()
    assert kwargs["headers"] == {"Authorization": f"Bearer {token}"}
    assert kwargs["files"]["file"] == ("f.json", b"{}", "application/json")
    assert kwargs["timeout"] == 5


def test_client_upload_errors(filebase_config):
    session = MagicMock()
    client = FilebaseClient(filebase_config, session=session)

    session.post.return_value = response(status_code=401, payload={"error": "unauthorized"})
    with pytest.raises(UploadError):
        client.upload("f.json", b"{}")

    session.post.return_value = response(payload={"Name": "f.json"})
    with pytest.raises(UploadError):
        client.upload("f.json", b"{}")

    session.post.side_effect = requests.Timeout("timed out")
    with pytest.raises(UploadError):
        client.upload("f.json", b"{}")


def test_real_upload_embeds_metadata(real_mode, storage):
    session = MagicMock()
    session.post.return_value = response(payload={"Hash": "bafyreal"})
    store = ContentStore(real_mode, storage, session=session, clock=lambda: 1700000000.0)

    assert store.upload(DOCUMENT) == "bafyreal"

    name, body, content_type = session.post.call_args.kwargs["files"]["file"]
    assert name == f"diabetes-record-1700000000000-{generate_hash(DOCUMENT)}.json"
    assert content_type == "application/json"
    stored = json.loads(body)
    assert stored["encryptedData"] == DOCUMENT["encryptedData"]
    assert stored["uploadMetadata"] == {
        "upload-time": "2023-11-14T22:13:20Z",
        "data-type": "diabetes-survey",
        "encrypted": "true",
    }


@pytest.mark.parametrize("failure", [
    requests.ConnectionError("unreachable"),
    requests.Timeout("timed out"),
])
def test_real_upload_falls_back_to_simulation(real_mode, storage, failure):
    session = MagicMock()
    session.post.side_effect = failure
    store = ContentStore(real_mode, storage, session=session)

    cid = store.upload(DOCUMENT)

    assert cid == simulated_cid(DOCUMENT)
    # The fallback copy is readable without the gateway
    assert store.fetch(cid) == DOCUMENT
    session.get.assert_not_called()


def test_real_fetch_from_gateway(real_mode, storage):
    session = MagicMock()
    session.get.return_value = response(payload=DOCUMENT)
    store = ContentStore(real_mode, storage, session=session)

    assert store.fetch("bafyreal") == DOCUMENT
    session.get.assert_called_once_with("https://gateway.example.test/ipfs/bafyreal", timeout=5)


@pytest.mark.parametrize("configure", [
    lambda s: setattr(s.get, "return_value", response(status_code=404, payload=None)),
    lambda s: setattr(s.get, "return_value", response(json_error=True)),
    lambda s: setattr(s.get, "return_value", response(payload=["not", "an", "object"])),
    lambda s: setattr(s.get, "side_effect", requests.ConnectionError("unreachable")),
])
def test_real_fetch_failures(real_mode, storage, configure):
    session = MagicMock()
    configure(session)
    store = ContentStore(real_mode, storage, session=session)

    with pytest.raises(FetchError):
        store.fetch("bafyreal")


def test_status_properties(real_mode, storage, simulated_store):
    real = ContentStore(real_mode, storage, session=MagicMock())
    assert real.is_real
    assert real.bucket_name == "test-bucket"
    assert real.url_for("bafy") == "https://gateway.example.test/ipfs/bafy"

    assert not simulated_store.is_real
    assert simulated_store.bucket_name is None
