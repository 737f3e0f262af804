"""
Tests for the registration report ABI codec.
"""
import pytest
from eth_abi import decode
from web3 import Web3

from sardis_rwa.codec import (
    REGISTRATION_ABI_TYPES,
    UINT256_MAX,
    decode_registration,
    encode_registration,
)
from sardis_rwa.exceptions import EncodingError
from sardis_rwa.models import RegistrationRequest


@pytest.fixture
def request_model(rolex_payload):
    return RegistrationRequest.model_validate(rolex_payload)


class TestEncodeRegistration:
    """Tests for encode_registration."""

    def test_encoding_is_deterministic(self, request_model, rolex_payload):
        """Equal requests produce byte-identical reports."""
        other = RegistrationRequest.model_validate(dict(rolex_payload))

        assert encode_registration(request_model).data == encode_registration(other).data

    def test_head_layout_matches_consumer_tuple(self, request_model):
        """Five head words: fractions, three string offsets, price."""
        data = encode_registration(request_model).data

        words = [int.from_bytes(data[i:i + 32], "big") for i in range(0, 160, 32)]
        assert words[0] == 1000
        assert words[1] == 5 * 32  # first dynamic field starts right after the head
        assert words[1] < words[2] < words[3]
        assert words[4] == 1_000_000_000_000_000

    def test_consumer_decodes_same_values(self, request_model):
        """Decoding with the consumer's types yields the request fields."""
        record = encode_registration(request_model)

        fractions, brand, model, serial, price = decode(list(REGISTRATION_ABI_TYPES), record.data)
        assert (fractions, brand, model, serial, price) == (
            1000, "Rolex", "Submariner", "RLX-116500-ABC123", 1_000_000_000_000_000,
        )

        decoded = decode_registration(record)
        assert decoded.fractions == 1000
        assert decoded.serial == "RLX-116500-ABC123"
        assert decoded.price_per_fraction == 1_000_000_000_000_000

    def test_digest_is_keccak_of_data(self, request_model):
        record = encode_registration(request_model)

        assert record.digest == bytes(Web3.keccak(record.data))
        assert record.hex() == "0x" + record.data.hex()
        assert len(record) == len(record.data)

    def test_appraisal_source_is_not_encoded(self, request_model, rolex_payload):
        """appraisalSource is informational only."""
        with_source = RegistrationRequest.model_validate(
            {**rolex_payload, "appraisalSource": "WatchCert Labs"}
        )

        assert encode_registration(with_source).data == encode_registration(request_model).data

    def test_non_ascii_strings_are_utf8_encoded(self, rolex_payload):
        request = RegistrationRequest.model_validate({**rolex_payload, "watchModel": "Sous-marin Édition"})

        decoded = decode_registration(encode_registration(request))
        assert decoded.model == "Sous-marin Édition"

    def test_max_uint256_price_is_accepted(self, rolex_payload):
        request = RegistrationRequest.model_validate(
            {**rolex_payload, "pricePerFractionWei": str(UINT256_MAX)}
        )

        assert decode_registration(encode_registration(request)).price_per_fraction == UINT256_MAX


class TestEncodingOverflow:
    """Values that do not fit uint256 raise EncodingError."""

    def test_price_overflow(self, rolex_payload):
        request = RegistrationRequest.model_validate(
            {**rolex_payload, "pricePerFractionWei": str(UINT256_MAX + 1)}
        )

        with pytest.raises(EncodingError) as exc_info:
            encode_registration(request)

        assert exc_info.value.error_code == "ENCODING_ERROR"
        assert exc_info.value.details["field"] == "pricePerFractionWei"

    def test_fraction_overflow(self, rolex_payload):
        request = RegistrationRequest.model_validate({**rolex_payload, "totalFractions": 2**256})

        with pytest.raises(EncodingError) as exc_info:
            encode_registration(request)

        assert exc_info.value.details["field"] == "totalFractions"


class TestDecodeRegistration:

    def test_malformed_report_raises(self):
        with pytest.raises(EncodingError):
            decode_registration(b"\x01\x02")
