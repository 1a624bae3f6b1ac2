"""
Wrapper around the diabetes analytics contract.

Transactions are built, signed with the configured private key and sent
through a web3 provider. The contract itself is an external collaborator;
only the calls used by the backend are described in the ABI below.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from web3 import Web3
from web3.exceptions import MismatchedABI

from survey_backend.constants import CONTRACT_ADDRESS, GAS_LIMIT, PRIVATE_KEY, SEPOLIA_RPC_URL
from survey_backend.models import AnalysisRequest, ContractStats

logger = logging.getLogger(__name__)


def _fn(name, inputs, outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": i} for n, t, i in inputs],
    }


ANALYTICS_ABI = [
    _fn("submitPatientData",
        [("encryptedGlucose", "bytes"), ("inputProof", "bytes"), ("ipfsCid", "string"), ("loincCode", "string")],
        mutability="nonpayable"),
    _fn("requestAnalysis", [("analysisType", "uint8")], mutability="payable"),
    _fn("getPatientSubmissionCount", [("patient", "address")], ["uint256"]),
    _fn("getPatientCids", [("patient", "address")], ["string[]"]),
    _fn("getAnalysisRequest", [("requestId", "uint256")], ["address", "uint256", "bool", "string", "uint256"]),
    _fn("getStats", [], ["uint256", "uint256", "uint256"]),
    _fn("authorizedResearchers", [("researcher", "address")], ["bool"]),
    _fn("analysisFeeBasis", [], ["uint256"]),
    _event("DataSubmitted", [("patient", "address", True), ("ipfsCid", "string", False), ("timestamp", "uint256", False)]),
    _event("AnalysisRequested", [("researcher", "address", True), ("requestId", "uint256", True)]),
    _event("AnalysisCompleted", [("requestId", "uint256", True), ("resultCid", "string", False)]),
]

EVENT_NAMES = ("DataSubmitted", "AnalysisRequested", "AnalysisCompleted")


class AnalyticsContract:
    """Calls into the analytics contract on behalf of one account"""

    def __init__(self, w3: Web3, address: str, private_key: str, gas_limit: int = GAS_LIMIT):
        self.w3 = w3
        self.contract = w3.eth.contract(address=Web3.to_checksum_address(address), abi=ANALYTICS_ABI)
        self.account = w3.eth.account.from_key(private_key)
        self.private_key = private_key
        self.gas_limit = gas_limit

    @classmethod
    def from_env(cls) -> Optional["AnalyticsContract"]:
        """Build the contract from environment settings, or None if it is not configured"""
        if not CONTRACT_ADDRESS or not PRIVATE_KEY:
            logger.warning("CONTRACT_ADDRESS or PRIVATE_KEY not set, on-chain submission disabled")
            return None

        w3 = Web3(Web3.HTTPProvider(
            SEPOLIA_RPC_URL,
            request_kwargs={
                'timeout': 60,
                'headers': {"Content-Type": "application/json"}
            }
        ))
        return cls(w3, CONTRACT_ADDRESS, PRIVATE_KEY)

    def _send(self, function, value: int = 0) -> Tuple[str, Any]:
        """Sign and send a contract call, returning the transaction hash and receipt"""
        address = self.account.address
        nonce = self.w3.eth.get_transaction_count(address)

        tx = function.build_transaction({
            'from': address,
            'gas': self.gas_limit,
            'gasPrice': self.w3.eth.gas_price,
            'nonce': nonce,
            'value': value,
        })

        signed_tx = self.w3.eth.account.sign_transaction(tx, self.private_key)
        tx_hash = self.w3.eth.send_raw_transaction(signed_tx.raw_transaction)
        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"Transaction sent: {tx_hash_hex}")

        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=120)
        logger.info(f"Transaction {tx_hash_hex} mined in block {receipt['blockNumber']}")
        return tx_hash_hex, receipt

    def submit_patient_data(self, encrypted: str, proof: str, ipfs_cid: str, loinc_code: str) -> str:
        """Register an encrypted value and its IPFS CID, returning the transaction hash"""
        function = self.contract.functions.submitPatientData(
            Web3.to_bytes(hexstr=encrypted),
            Web3.to_bytes(hexstr=proof),
            ipfs_cid,
            loinc_code,
        )
        tx_hash, receipt = self._send(function)
        for event in self.decode_events(receipt):
            logger.info(f"{event['event']} emitted: {event['args']}")
        return tx_hash

    def request_analysis(self, analysis_type: int) -> str:
        """Request an analysis, paying the current fee"""
        fee = self.analysis_fee()
        tx_hash, _ = self._send(self.contract.functions.requestAnalysis(analysis_type), value=fee)
        return tx_hash

    def analysis_fee(self) -> int:
        return self.contract.functions.analysisFeeBasis().call()

    def get_stats(self) -> ContractStats:
        patients, submissions, requests = self.contract.functions.getStats().call()
        return ContractStats(
            total_patients=patients,
            total_submissions=submissions,
            total_requests=requests,
        )

    def is_authorized_researcher(self, address: str) -> bool:
        return self.contract.functions.authorizedResearchers(Web3.to_checksum_address(address)).call()

    def get_patient_cids(self, address: str) -> List[str]:
        return list(self.contract.functions.getPatientCids(Web3.to_checksum_address(address)).call())

    def get_patient_submission_count(self, address: str) -> int:
        return self.contract.functions.getPatientSubmissionCount(Web3.to_checksum_address(address)).call()

    def get_analysis_request(self, request_id: int) -> AnalysisRequest:
        researcher, timestamp, completed, result_cid, fee = (
            self.contract.functions.getAnalysisRequest(request_id).call()
        )
        return AnalysisRequest(
            researcher=researcher,
            timestamp=timestamp,
            completed=completed,
            result_cid=result_cid,
            fee=fee,
        )

    def decode_events(self, receipt) -> List[Dict[str, Any]]:
        """Decode the analytics events emitted in a transaction receipt"""
        events = []
        for log in receipt["logs"]:
            for name in EVENT_NAMES:
                try:
                    decoded = getattr(self.contract.events, name)().process_log(log)
                except MismatchedABI:
                    continue
                events.append({"event": name, "args": dict(decoded["args"])})
                break
        return events
