"""
Encryption capability for values submitted to the analytics contract.

Only the simulated path is implemented. The simulated ciphertext embeds the
plaintext value for local debugging and provides no confidentiality.
"""

import re
import time
import logging
from typing import Any, Callable, List, Union

from survey_backend.constants import GLUCOSE_MAX, GLUCOSE_MIN
from survey_backend.models import EncryptedValue

logger = logging.getLogger(__name__)

UINT32_MAX = 4294967295
HEX_PATTERN = re.compile(r"^0x[0-9a-fA-F]+$")


class FHEVMClient:
    """Client producing (simulated) encrypted uint32 inputs with proofs"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.public_key = "0x" + "00" * 32
        self.is_simulation_mode = True

    def encrypt_uint32(self, value: int) -> EncryptedValue:
        return self.mock_encrypt_uint32(value)

    def encrypt_glucose(self, glucose: Union[float, str]) -> EncryptedValue:
        """
        Encrypt a blood glucose value in mg/dL, keeping one decimal place.

        Raises:
            ValueError: If the value is outside the accepted range
        """
        value = float(glucose)
        if value < GLUCOSE_MIN or value > GLUCOSE_MAX:
            raise ValueError(f"Blood glucose must be between {GLUCOSE_MIN} and {GLUCOSE_MAX} mg/dL")
        return self.encrypt_uint32(int(round(value * 10)))

    def encrypt_batch(self, values: List[int]) -> List[EncryptedValue]:
        return [self.encrypt_uint32(value) for value in values]

    def mock_encrypt_uint32(self, value: int) -> EncryptedValue:
        value = int(value)
        if value < 0 or value > UINT32_MAX:
            raise ValueError("Value is out of uint32 range")

        timestamp = int(self.clock() * 1000)
        seed = timestamp + value

        data = bytearray((seed * (i + 1) * 1103515245 + 12345) % 256 for i in range(32))
        for i, byte in enumerate(value.to_bytes(4, "big")):
            data[i] ^= byte

        proof = bytes((seed * (i + 5) * 1664525 + 1013904223) % 256 for i in range(64))

        return EncryptedValue(
            data="0x" + data.hex(),
            proof="0x" + proof.hex(),
            is_simulated=True,
            original_value=value,
            timestamp=timestamp,
        )

    def mock_decrypt_uint32(self, encrypted: EncryptedValue) -> int:
        """Recover the value of a simulated ciphertext"""
        if not encrypted.is_simulated or encrypted.original_value is None:
            raise ValueError("Only simulated ciphertexts can be decrypted")
        return encrypted.original_value

    def status(self) -> dict:
        return {
            "mode": "simulation",
            "has_public_key": bool(self.public_key),
        }


def validate_encrypted_data(encrypted: Any) -> bool:
    """Check that an encrypted value carries hex data and proof"""
    if isinstance(encrypted, EncryptedValue):
        encrypted = encrypted.model_dump()
    if not isinstance(encrypted, dict):
        return False
    data = encrypted.get("data")
    proof = encrypted.get("proof")
    if not isinstance(data, str) or not isinstance(proof, str):
        return False
    return bool(HEX_PATTERN.match(data) and HEX_PATTERN.match(proof))
