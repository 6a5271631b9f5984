#!/usr/bin/env python
# -*- coding: utf-8 -*-
"""
Tests for passphrase key derivation and AES-256-CBC payload encryption
"""
import hashlib

import pytest
from hypothesis import given, settings, strategies as st

from clipsync.core.cipher import KeyMaterial, decrypt, derive_key_material, encrypt
from clipsync.core.exceptions import ConfigurationError, CryptoError

passphrases = st.text(min_size=1, max_size=64)


class TestKeyDerivation:

    @given(passphrase=passphrases)
    @settings(max_examples=100)
    def test_derivation_is_deterministic(self, passphrase):
        assert derive_key_material(passphrase) == derive_key_material(passphrase)

    @given(passphrase=passphrases)
    @settings(max_examples=100)
    def test_iv_is_xor_of_key_halves(self, passphrase):
        material = derive_key_material(passphrase)
        assert len(material.key) == 32
        assert len(material.iv) == 16
        for i in range(16):
            assert material.iv[i] == material.key[i] ^ material.key[i + 16]

    def test_key_is_sha256_of_utf8_passphrase(self):
        material = derive_key_material('pässwörd')
        assert material.key == hashlib.sha256('pässwörd'.encode('utf-8')).digest()

    def test_different_passphrases_give_different_keys(self):
        assert derive_key_material('secret').key != derive_key_material('Secret').key

    def test_empty_passphrase_is_rejected(self):
        with pytest.raises(ConfigurationError):
            derive_key_material('')

    def test_key_material_checks_lengths(self):
        with pytest.raises(ConfigurationError):
            KeyMaterial(key=b'\x00' * 16, iv=b'\x00' * 16)
        with pytest.raises(ConfigurationError):
            KeyMaterial(key=b'\x00' * 32, iv=b'\x00' * 8)

    def test_repr_hides_key(self):
        assert 'hidden' in repr(derive_key_material('secret'))


class TestEncryption:

    @given(payload=st.binary(max_size=512), passphrase=passphrases)
    @settings(max_examples=100)
    def test_round_trip(self, payload, passphrase):
        key = derive_key_material(passphrase)
        assert decrypt(encrypt(payload, key), key) == payload

    @given(payload=st.binary(max_size=256))
    def test_ciphertext_is_padded_to_block_size(self, payload):
        ciphertext = encrypt(payload, derive_key_material('secret'))
        assert len(ciphertext) % 16 == 0
        # PKCS#7 always adds at least one byte
        assert len(ciphertext) > len(payload)

    def test_encryption_is_deterministic_for_same_key(self):
        key = derive_key_material('secret')
        assert encrypt(b'hello', key) == encrypt(b'hello', key)

    @given(payload=st.binary(min_size=1, max_size=256))
    @settings(max_examples=100)
    def test_wrong_key_never_yields_the_plaintext(self, payload):
        ciphertext = encrypt(payload, derive_key_material('secret'))
        wrong = derive_key_material('not the secret')
        try:
            assert decrypt(ciphertext, wrong) != payload
        except CryptoError:
            pass

    def test_empty_ciphertext_fails(self):
        with pytest.raises(CryptoError):
            decrypt(b'', derive_key_material('secret'))

    def test_truncated_ciphertext_fails(self):
        key = derive_key_material('secret')
        ciphertext = encrypt(b'hello world, this spans two blocks', key)
        with pytest.raises(CryptoError):
            decrypt(ciphertext[:-3], key)

    def test_non_block_multiple_fails(self):
        with pytest.raises(CryptoError):
            decrypt(b'\x01' * 17, derive_key_material('secret'))

    def test_corrupt_padding_fails(self):
        key = derive_key_material('secret')
        # the first block alone decrypts to data ending in 0x00, never valid PKCS#7
        bad_block = encrypt(b'x' * 15 + b'\x00', key)[:16]
        with pytest.raises(CryptoError):
            decrypt(bad_block, key)
