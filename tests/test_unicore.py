"""Tests for unicore building blocks: hash chain, conditions, service, addresses."""

import hashlib
import json

import pytest

from unicore import (
    AddressError,
    Burn,
    ConfigError,
    ErrorCode,
    KeyOwnership,
    LocalUnicityService,
    MINT_SUFFIX,
    Multisig,
    SubmitRequest,
    Timelock,
    UnicoreConfig,
    Witness,
    derive_mint_state_hash,
    derive_next_state_hash,
    derive_state_id,
    direct_address,
    encode,
    evaluate,
    fingerprint,
    generate_keypair,
    is_address_of,
    mint_condition,
    parse_direct_address,
    replay_state_hashes,
    sign_message,
    verify_signature,
)
from unicore import signature
from unicore.merkle import leaf_hash, merkle_path, merkle_root, root_from_path
from unicore.predicate import condition_from_dict, condition_to_dict
from unicore.signature import public_key_for
from unicore.unicity import transaction_message


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


class TestEncode:
    def test_deterministic(self):
        assert encode({"b": 2, "a": 1}) == encode({"a": 1, "b": 2})

    def test_bytes_as_hex(self):
        assert encode({"k": b"\x01\xff"}) == b'{"k":"01ff"}'

    def test_none_is_kept(self):
        assert encode({"a": None}) != encode({})


class TestHashChain:
    def test_mint_state_hash(self):
        assert derive_mint_state_hash(b"T1") == sha256(b"T1" + MINT_SUFFIX)

    def test_next_state_hash(self):
        state = derive_mint_state_hash(b"T1")
        mask = b"\x07" * 32
        assert derive_next_state_hash(state, mask) == sha256(state + mask)

    def test_state_id(self):
        condition = KeyOwnership(public_key=b"\x01" * 32)
        state = b"\x02" * 32
        assert derive_state_id(condition, state) == sha256(fingerprint(condition) + state)

    def test_state_id_depends_on_condition(self):
        state = b"\x02" * 32
        a = derive_state_id(KeyOwnership(public_key=b"\x01" * 32), state)
        b = derive_state_id(KeyOwnership(public_key=b"\x03" * 32), state)
        assert a != b

    def test_replay_state_hashes(self):
        masks = [b"\x01" * 16, b"\x02" * 16]
        hashes = list(replay_state_hashes(b"T1", masks))
        assert len(hashes) == 3
        assert hashes[0] == derive_mint_state_hash(b"T1")
        assert hashes[2] == derive_next_state_hash(hashes[1], masks[1])


class TestSignature:
    def test_sign_and_verify(self):
        private, public = generate_keypair()
        sig = sign_message(private, b"hello")
        assert len(sig) == 64
        assert verify_signature(public, b"hello", sig)
        assert not verify_signature(public, b"other", sig)

    def test_malformed_inputs_are_false(self):
        _, public = generate_keypair()
        assert not verify_signature(public, b"m", b"")
        assert not verify_signature(b"short", b"m", b"\x00" * 64)

    @pytest.mark.parametrize("backend", [signature.NACL, signature.CRYPTOGRAPHY])
    def test_backends_interoperate(self, backend, monkeypatch):
        private, public = generate_keypair()
        sig = sign_message(private, b"hello")

        monkeypatch.setattr(signature, "backend_name", lambda: backend)
        assert public_key_for(private) == public
        assert sign_message(private, b"hello") == sig
        assert verify_signature(public, b"hello", sig)
        assert not verify_signature(public, b"hello", bytes(64))
        other_private, other_public = generate_keypair()
        assert verify_signature(other_public, b"m", sign_message(other_private, b"m"))


class TestConditions:
    def setup_method(self):
        self.private, self.public = generate_keypair()
        self.message = b"\x09" * 32
        self.witness = Witness(signatures=(sign_message(self.private, self.message),))

    def test_key_ownership(self):
        condition = KeyOwnership(public_key=self.public)
        assert evaluate(condition, 0, self.message, self.witness)
        assert condition.evaluate(self.witness, self.message, 0)
        assert not evaluate(condition, 0, b"\x00" * 32, self.witness)

    def test_key_ownership_empty_witness(self):
        assert not evaluate(KeyOwnership(public_key=self.public), 0, self.message, Witness())

    def test_burn_never_satisfied(self):
        assert not evaluate(Burn(), 0, self.message, self.witness)
        assert not Burn(reason=b"swap").evaluate(self.witness, self.message, 10**9)

    def test_timelock(self):
        condition = Timelock(public_key=self.public, unlock_time=1000)
        assert not evaluate(condition, 999, self.message, self.witness)
        assert evaluate(condition, 1000, self.message, self.witness)

    def test_multisig_threshold(self):
        keys = [generate_keypair() for _ in range(3)]
        condition = Multisig(public_keys=tuple(pub for _, pub in keys), threshold=2)
        sigs = [sign_message(priv, self.message) for priv, _ in keys]

        two = Witness(signatures=(sigs[0], b"", sigs[2]))
        one = Witness(signatures=(sigs[0], b"", b""))
        misaligned = Witness(signatures=(sigs[1], sigs[0], b""))
        short = Witness(signatures=(sigs[0], sigs[1]))

        assert evaluate(condition, 0, self.message, two)
        assert not evaluate(condition, 0, self.message, one)
        assert not evaluate(condition, 0, self.message, misaligned)
        assert not evaluate(condition, 0, self.message, short)

    def test_multisig_bad_threshold(self):
        with pytest.raises(ValueError, match="Threshold"):
            Multisig(public_keys=(self.public,), threshold=2)
        with pytest.raises(ValueError, match="Threshold"):
            Multisig(public_keys=(self.public,), threshold=0)

    def test_multisig_duplicate_keys(self):
        with pytest.raises(ValueError, match="distinct"):
            Multisig(public_keys=(self.public, self.public), threshold=2)

    def test_fingerprints_differ_by_variant(self):
        prints = {
            fingerprint(KeyOwnership(public_key=self.public)),
            fingerprint(Timelock(public_key=self.public, unlock_time=0)),
            fingerprint(Multisig(public_keys=(self.public,), threshold=1)),
            fingerprint(Burn()),
        }
        assert len(prints) == 4

    def test_dict_form(self):
        condition = Multisig(public_keys=(self.public, b"\x01" * 32), threshold=1)
        restored = condition_from_dict(json.loads(json.dumps(condition_to_dict(condition))))
        assert restored == condition
        assert restored.fingerprint() == condition.fingerprint()

    def test_mint_condition_is_fixed(self):
        assert mint_condition() == mint_condition()
        assert isinstance(mint_condition(), KeyOwnership)


class TestMerkle:
    @pytest.mark.parametrize("size", [1, 2, 3, 5, 8])
    def test_every_leaf_proves_to_root(self, size):
        leaves = [leaf_hash(bytes([i]) * 32, b"\xaa" * 32) for i in range(size)]
        root = merkle_root(leaves)
        for index, leaf in enumerate(leaves):
            assert root_from_path(leaf, merkle_path(leaves, index)) == root

    def test_wrong_leaf_does_not_prove(self):
        leaves = [leaf_hash(bytes([i]) * 32, b"\xaa" * 32) for i in range(4)]
        path = merkle_path(leaves, 1)
        assert root_from_path(leaves[2], path) != merkle_root(leaves)

    def test_index_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            merkle_path([b"\x00" * 32], 1)


class TestLocalUnicityService:
    def setup_method(self):
        self.service = LocalUnicityService(clock=lambda: 1_000)
        self.private, self.public = generate_keypair()
        self.condition = KeyOwnership(public_key=self.public)
        self.state_hash = derive_mint_state_hash(b"svc")

    def _request(self, tx_hash: bytes) -> SubmitRequest:
        message = transaction_message(self.state_hash, tx_hash)
        witness = Witness(signatures=(sign_message(self.private, message),))
        return SubmitRequest(self.condition, self.state_hash, tx_hash, witness)

    def test_accepts_and_proves(self):
        request = self._request(b"\x01" * 32)
        response = self.service.submit_request(request)
        assert response.accepted
        assert response.error is None
        proofs = self.service.verifier()
        assert proofs.verify_inclusion_proof(request.state_id, b"\x01" * 32, response.inclusion_proof)
        assert proofs.extract_time(response.inclusion_proof) == 1_000

    def test_proof_does_not_cover_other_hash(self):
        request = self._request(b"\x01" * 32)
        response = self.service.submit_request(request)
        proofs = self.service.verifier()
        assert not proofs.verify_inclusion_proof(request.state_id, b"\x02" * 32, response.inclusion_proof)

    def test_rejects_second_registration(self):
        assert self.service.submit_request(self._request(b"\x01" * 32)).accepted
        second = self.service.submit_request(self._request(b"\x02" * 32))
        assert not second.accepted
        assert second.error is ErrorCode.DOUBLE_SPEND
        assert len(self.service) == 1

    def test_rejects_bad_witness(self):
        request = SubmitRequest(self.condition, self.state_hash, b"\x01" * 32, Witness())
        response = self.service.submit_request(request)
        assert not response.accepted
        assert response.error is ErrorCode.CONDITION_UNSATISFIED
        assert self.service.get_inclusion_proof(request.state_id) is None

    def test_proof_query_after_later_rounds(self):
        now = [1_000]
        service = LocalUnicityService(clock=lambda: now[0])
        first = self._request(b"\x01" * 32)
        service.submit_request(first)

        now[0] = 9_000
        other_private, other_public = generate_keypair()
        other_state = derive_mint_state_hash(b"other")
        message = transaction_message(other_state, b"\x03" * 32)
        service.submit_request(SubmitRequest(
            KeyOwnership(public_key=other_public), other_state, b"\x03" * 32,
            Witness(signatures=(sign_message(other_private, message),)),
        ))
        assert service.round_number == 2

        proofs = service.verifier()
        proof = service.get_inclusion_proof(first.state_id)
        assert proof.certificate.round_number == 1
        assert proofs.extract_time(proof) == 1_000
        assert proofs.verify_inclusion_proof(first.state_id, b"\x01" * 32, proof)

    def test_untrusted_key_rejects_proof(self):
        request = self._request(b"\x01" * 32)
        response = self.service.submit_request(request)
        stranger = LocalUnicityService().verifier()
        assert not stranger.verify_inclusion_proof(request.state_id, b"\x01" * 32, response.inclusion_proof)

    def test_wire_form(self):
        request = self._request(b"\x01" * 32)
        wire = request.to_dict()
        assert wire["lockingConditionFingerprint"] == fingerprint(self.condition).hex()
        assert SubmitRequest.from_dict(json.loads(json.dumps(wire))) == request


class TestAddress:
    def test_format(self):
        condition = KeyOwnership(public_key=b"\x05" * 32)
        digest = fingerprint(condition)
        address = direct_address(condition)
        assert address == "DIRECT://" + digest.hex() + sha256(digest)[:4].hex()
        assert parse_direct_address(address) == digest
        assert is_address_of(address, condition)

    def test_checksum_mismatch(self):
        address = direct_address(Burn())
        last = "0" if address[-1] != "0" else "1"
        with pytest.raises(AddressError, match="checksum"):
            parse_direct_address(address[:-1] + last)

    def test_bad_prefix_and_hex(self):
        with pytest.raises(AddressError):
            parse_direct_address("PROXY://00")
        with pytest.raises(AddressError):
            parse_direct_address("DIRECT://zz")
        with pytest.raises(ValueError):
            parse_direct_address("DIRECT://00")

    def test_other_condition(self):
        address = direct_address(Burn())
        assert not is_address_of(address, Burn(reason=b"x"))
        assert not is_address_of("garbage", Burn())


class TestConfig:
    def test_defaults(self):
        config = UnicoreConfig()
        assert config.service_timeout == 10.0
        assert config.max_workers == 4

    def test_from_env(self):
        config = UnicoreConfig.from_env({
            "UNICORE_SERVICE_TIMEOUT": "2.5",
            "UNICORE_MAX_WORKERS": "8",
            "UNICORE_TOKEN_VERSION": "3.0",
        })
        assert config.service_timeout == 2.5
        assert config.max_workers == 8
        assert config.token_version == "3.0"

    def test_timeout_disabled(self):
        assert UnicoreConfig.from_env({"UNICORE_SERVICE_TIMEOUT": "none"}).service_timeout is None

    def test_invalid_values(self):
        with pytest.raises(ConfigError):
            UnicoreConfig.from_env({"UNICORE_MAX_WORKERS": "many"})
        with pytest.raises(ConfigError):
            UnicoreConfig.from_env({"UNICORE_MAX_WORKERS": "0"})
        with pytest.raises(ConfigError):
            UnicoreConfig(service_timeout=-1)
