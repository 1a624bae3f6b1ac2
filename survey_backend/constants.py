"""
Constants for the diabetes survey record backend.

This module defines configuration values used throughout the application,
including storage locations, Filebase/IPFS settings and contract settings.
"""

import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Local key-value storage directory (patient record index and simulated uploads)
LOCAL_STORAGE_DIR = os.getenv("LOCAL_STORAGE_DIR", "local_storage")

# Key under which the patient record index is persisted
PATIENT_RECORDS_KEY = "patientRecords"

# Prefix for simulated IPFS documents kept in local storage
MOCK_OBJECT_PREFIX = "ipfs_mock_"

# Shape of a simulated CID: "Qm" followed by 44 characters
MOCK_CID_PREFIX = "Qm"
MOCK_CID_BODY_LENGTH = 44

# Filebase credentials (bucket-scoped IPFS RPC access)
FILEBASE_ACCESS_KEY = os.getenv("FILEBASE_ACCESS_KEY", "")
FILEBASE_SECRET_KEY = os.getenv("FILEBASE_SECRET_KEY", "")
FILEBASE_BUCKET = os.getenv("FILEBASE_BUCKET", "diabetes-analytics")
FILEBASE_RPC_URL = os.getenv("FILEBASE_RPC_URL", "https://rpc.filebase.io/api/v0")

# Sentinel used by the sample .env file for unset credentials
PLACEHOLDER_SENTINEL = "YOUR_"

# Public gateway used for reads and confirmation links
IPFS_GATEWAY_URL = os.getenv("IPFS_GATEWAY_URL", "https://ipfs.filebase.io/ipfs")

# Wait budget for remote IPFS calls (seconds)
IPFS_TIMEOUT = float(os.getenv("IPFS_TIMEOUT", "30"))

# Record metadata
RECORD_VERSION = 1
RECORD_TYPE = "diabetes-patient-record"
UPLOAD_DATA_TYPE = "diabetes-survey"

# Survey data types submitted by the patient forms
DATA_TYPE_SURVEY = "diabetes-survey"
DATA_TYPE_COMPREHENSIVE = "comprehensive-survey"
DATA_TYPE_GLUCOSE = "blood-glucose"

# Blood glucose range accepted for encryption (mg/dL)
GLUCOSE_MIN = 20
GLUCOSE_MAX = 600

# LOINC code for glucose in serum or plasma
DEFAULT_LOINC_CODE = "2345-7"

# Sepolia RPC URL
SEPOLIA_RPC_URL = os.getenv("SEPOLIA_RPC_URL", "https://ethereum-sepolia-rpc.publicnode.com")

# Analytics contract address (unset disables on-chain submission)
CONTRACT_ADDRESS = os.getenv("CONTRACT_ADDRESS", "")

# Private key used to sign contract transactions
PRIVATE_KEY = os.getenv("PRIVATE_KEY", "")

# Gas limit for contract transactions
GAS_LIMIT = int(os.getenv("GAS_LIMIT", "500000"))
