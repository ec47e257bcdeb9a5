from __future__ import annotations

import base64
import os
import uuid
from pathlib import Path

import pytest

from hsm_rest_client import HsmConfig, HsmRestClient

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def live_config() -> HsmConfig:
    if not os.environ.get("HSM_SERVER_ADDRESS"):
        pytest.skip("HSM_SERVER_ADDRESS is not set; no live HSM service to test against.")
    if not os.environ.get("HSM_API_KEY") or not os.environ.get("HSM_PIN"):
        pytest.skip("HSM_API_KEY and HSM_PIN are required for live HSM tests.")
    return HsmConfig.from_env()


def test_live_ping_and_random(live_config: HsmConfig) -> None:
    with HsmRestClient.from_config(live_config) as client:
        client.ping()
        assert len(base64.b64decode(client.random())) == 32
        assert len(base64.b64decode(client.random(16))) == 16


def test_live_encrypt_sign_round_trip(live_config: HsmConfig, tmp_path: Path) -> None:
    key_label = os.environ.get("HSM_TEST_KEY_LABEL", "")
    plaintext = f"integration-{uuid.uuid4().hex}"

    with HsmRestClient.from_config(live_config) as client:
        if client.tier.requires_key_label and not key_label:
            pytest.skip("Set HSM_TEST_KEY_LABEL for sessions above the USER_OBJECT tier.")
        ciphertext = client.encrypt(plaintext.encode("utf-8"), key_label)
        assert client.decrypt(ciphertext, key_label) == plaintext

        data_file = tmp_path / "data.bin"
        data_file.write_bytes(plaintext.encode("utf-8"))
        signature = client.sign(data_file, key_label, signature_path=tmp_path / "data.sig")
        client.verify(data_file, signature, key_label)
