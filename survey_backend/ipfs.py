"""
Content-addressed upload and fetch for patient records.

Two backend modes are supported, chosen once when the store is built:

* real: documents are added through the Filebase IPFS RPC API and read back
  through the public gateway. Upload failures fall back to simulation.
* simulated: CIDs are derived from a hash of the document and the document
  is kept in local storage. No network access happens.
"""

import base64
import json
import time
import logging
from typing import Any, Callable, Dict, Optional, Union, Literal

import requests
from pydantic import BaseModel

from survey_backend.constants import (
    FILEBASE_ACCESS_KEY,
    FILEBASE_BUCKET,
    FILEBASE_RPC_URL,
    FILEBASE_SECRET_KEY,
    IPFS_GATEWAY_URL,
    IPFS_TIMEOUT,
    MOCK_CID_BODY_LENGTH,
    MOCK_CID_PREFIX,
    MOCK_OBJECT_PREFIX,
    PLACEHOLDER_SENTINEL,
    UPLOAD_DATA_TYPE,
)
from survey_backend.errors import ConfigurationError, FetchError, UploadError
from survey_backend.hashing import generate_hash
from survey_backend.local_storage import LocalStorage

logger = logging.getLogger(__name__)


class FilebaseConfig(BaseModel):
    """Filebase bucket credentials and endpoints"""
    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    bucket_name: str = FILEBASE_BUCKET
    rpc_url: str = FILEBASE_RPC_URL
    gateway_url: str = IPFS_GATEWAY_URL
    timeout: float = IPFS_TIMEOUT

    @classmethod
    def from_env(cls) -> "FilebaseConfig":
        return cls(
            access_key=FILEBASE_ACCESS_KEY or None,
            secret_key=FILEBASE_SECRET_KEY or None,
        )

    def require_credentials(self) -> None:
        """
        Check that real credentials are configured.

        Raises:
            ConfigurationError: If a credential is missing or still a placeholder
        """
        for field in ("access_key", "secret_key", "bucket_name"):
            value = getattr(self, field)
            if not value:
                raise ConfigurationError(f"Filebase {field} is not configured")
            if PLACEHOLDER_SENTINEL in value:
                raise ConfigurationError(f"Filebase {field} is a placeholder value")


class RealMode(BaseModel):
    kind: Literal["real"] = "real"
    config: FilebaseConfig


class SimulatedMode(BaseModel):
    kind: Literal["simulated"] = "simulated"
    gateway_url: str = IPFS_GATEWAY_URL


BackendMode = Union[RealMode, SimulatedMode]


def select_backend_mode(config: FilebaseConfig) -> BackendMode:
    """Use the real backend when credentials are configured, otherwise simulate"""
    try:
        config.require_credentials()
    except ConfigurationError as e:
        logger.warning(f"{str(e)}, using simulation mode")
        return SimulatedMode(gateway_url=config.gateway_url)

    logger.info(f"Filebase IPFS configured for bucket {config.bucket_name}")
    return RealMode(config=config)


def simulated_cid(data: Any) -> str:
    """Build a CID-shaped string from the hash of data"""
    body = generate_hash(data).ljust(MOCK_CID_BODY_LENGTH, "0")[:MOCK_CID_BODY_LENGTH]
    return f"{MOCK_CID_PREFIX}{body}"


class FilebaseClient:
    """Minimal client for the Filebase IPFS RPC API"""

    def __init__(self, config: FilebaseConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    def _auth_header(self) -> Dict[str, str]:
        # Bucket-scoped RPC token is base64("key:secret:bucket")
        raw = f"{self.config.access_key}:{self.config.secret_key}:{self.config.bucket_name}"
        token = base64.b64encode(raw.encode()).decode()
        return {"Authorization": f"Bearer {token}"}

    def upload(self, key: str, body: bytes, content_type: str = "application/json") -> Dict[str, str]:
        """
        Add a file to the bucket.

        Args:
            key: File name
            body: File content
            content_type: MIME type of the content

        Returns:
            dict: content_identifier and location of the stored object

        Raises:
            UploadError: On network failure, non-success status or missing CID
        """
        try:
            response = self.session.post(
                f"{self.config.rpc_url}/add",
                params={"cid-version": 1, "pin": "true"},
                files={"file": (key, body, content_type)},
                headers=self._auth_header(),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            raise UploadError(f"Error contacting Filebase: {str(e)}") from e

        if response.status_code != 200:
            raise UploadError(f"Filebase upload failed: {response.status_code} - {response.text}")

        try:
            cid = response.json().get("Hash")
        except ValueError as e:
            raise UploadError(f"Invalid Filebase response: {str(e)}") from e

        if not cid:
            raise UploadError("Filebase response did not include a CID")

        return {
            "content_identifier": cid,
            "location": f"{self.config.gateway_url}/{cid}",
        }


class ContentStore:
    """Upload and fetch JSON documents by content address"""

    def __init__(
        self,
        mode: BackendMode,
        storage: LocalStorage,
        client: Optional[FilebaseClient] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.mode = mode
        self.storage = storage
        self.clock = clock
        self.session = session or requests.Session()
        self.client = None
        if isinstance(mode, RealMode):
            self.client = client or FilebaseClient(mode.config, session=self.session)

    @property
    def is_real(self) -> bool:
        return isinstance(self.mode, RealMode)

    @property
    def gateway_url(self) -> str:
        if isinstance(self.mode, RealMode):
            return self.mode.config.gateway_url
        return self.mode.gateway_url

    @property
    def bucket_name(self) -> Optional[str]:
        if isinstance(self.mode, RealMode):
            return self.mode.config.bucket_name
        return None

    def url_for(self, cid: str) -> str:
        return f"{self.gateway_url}/{cid}"

    def upload(self, data: Dict[str, Any]) -> str:
        """
        Store a JSON document and return its CID.

        In real mode any UploadError degrades to a simulated upload, so this
        always returns an address.
        """
        if not self.is_real:
            return self.simulate_upload(data)

        timestamp_ms = int(self.clock() * 1000)
        file_name = f"diabetes-record-{timestamp_ms}-{generate_hash(data)}.json"
        document = dict(data)
        document["uploadMetadata"] = {
            "upload-time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(self.clock())),
            "data-type": UPLOAD_DATA_TYPE,
            "encrypted": "true",
        }

        try:
            logger.info(f"Uploading {file_name} to Filebase bucket {self.bucket_name}")
            result = self.client.upload(
                file_name,
                json.dumps(document, indent=2).encode("utf-8"),
                "application/json",
            )
            cid = result["content_identifier"]
            logger.info(f"Stored on IPFS with CID: {cid} ({result['location']})")
            return cid
        except UploadError as e:
            logger.warning(f"Filebase upload failed, falling back to simulation: {str(e)}")
            return self.simulate_upload(data)

    def simulate_upload(self, data: Dict[str, Any]) -> str:
        """Derive a CID locally and keep the document in local storage"""
        cid = simulated_cid(data)
        try:
            self.storage.set_item(f"{MOCK_OBJECT_PREFIX}{cid}", json.dumps(data))
        except OSError as e:
            logger.error(f"Error keeping simulated upload {cid}: {str(e)}")
        logger.info(f"Simulated IPFS upload: {cid}")
        return cid

    def fetch(self, cid: str) -> Dict[str, Any]:
        """
        Read back a JSON document.

        Raises:
            FetchError: If the document cannot be found, fetched or parsed
        """
        local = self._fetch_local(cid)
        if local is not None:
            return local

        if not self.is_real:
            raise FetchError(f"No simulated IPFS object for CID {cid}")

        url = self.url_for(cid)
        logger.info(f"Fetching {cid} from {url}")
        try:
            response = self.session.get(url, timeout=self.mode.config.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Error fetching {cid} from IPFS gateway: {str(e)}") from e

        if not response.ok:
            raise FetchError(f"Error fetching {cid} from IPFS gateway: {response.status_code} {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise FetchError(f"IPFS object {cid} is not valid JSON: {str(e)}") from e

        if not isinstance(data, dict):
            raise FetchError(f"IPFS object {cid} is not a JSON object")
        return data

    def _fetch_local(self, cid: str) -> Optional[Dict[str, Any]]:
        try:
            stored = self.storage.get_item(f"{MOCK_OBJECT_PREFIX}{cid}")
        except (OSError, ValueError) as e:
            logger.error(f"Error reading simulated IPFS object {cid}: {str(e)}")
            return None
        if stored is None:
            return None
        try:
            return json.loads(stored)
        except json.JSONDecodeError as e:
            raise FetchError(f"Simulated IPFS object {cid} is corrupt: {str(e)}") from e
