# Tests for wipeable secret containers
#
# Coverage:
#   - SecureBuffer: private copy, read-only view, wipe, masked repr
#   - SecretText: UTF-16 storage, surrogates, copies, constant-time
#     equality, masking, wipe
#   - UTF-16-BE writer used to fill buffers without bytes copies

import struct

import pytest

from passvault.core.memory.secure_memory import (
    SecretText,
    SecureBuffer,
    utf16_length,
    write_utf16,
)


# ── SecureBuffer ────────────────────────────────────────────────────


class TestSecureBuffer:
    def test_holds_copy(self):
        source = bytearray(b"key material")
        buf = SecureBuffer(source, lock_memory=False)
        source[:] = bytes(len(source))
        assert buf.data == b"key material"

    def test_view_is_readonly(self):
        buf = SecureBuffer(b"abc", lock_memory=False)
        with buf.view() as view:
            assert view.readonly
            assert bytes(view) == b"abc"

    def test_wipe_zeroes_storage(self):
        buf = SecureBuffer(b"abcdef", lock_memory=False)
        buf.wipe()
        assert buf.is_wiped
        assert buf._buffer == bytearray(6)

    def test_access_after_wipe(self):
        buf = SecureBuffer(b"abc", lock_memory=False)
        buf.wipe()
        with pytest.raises(ValueError):
            buf.data
        with pytest.raises(ValueError):
            buf.view()

    def test_wipe_twice(self):
        buf = SecureBuffer(b"abc")
        buf.wipe()
        buf.wipe()
        assert buf.is_wiped

    def test_context_manager(self):
        with SecureBuffer(b"abc", lock_memory=False) as buf:
            assert len(buf) == 3
        assert buf.is_wiped

    def test_repr_masks_content(self):
        buf = SecureBuffer(b"topsecret", lock_memory=False)
        assert "topsecret" not in repr(buf)
        buf.wipe()
        assert repr(buf) == "SecureBuffer(WIPED)"


# ── SecretText ──────────────────────────────────────────────────────


class TestSecretText:
    def test_reveal(self):
        assert SecretText("p@ss").reveal() == "p@ss"

    def test_empty(self):
        secret = SecretText("")
        assert secret.reveal() == ""
        assert len(secret) == 0

    def test_stored_as_utf16_be(self):
        secret = SecretText("Ab")
        with secret.units() as units:
            assert bytes(units) == b"\x00A\x00b"

    def test_code_units_count_surrogate_pairs(self):
        assert SecretText("\U0001F600").code_units == 2
        assert len(SecretText("héllo")) == 5

    def test_lone_surrogate_round_trip(self):
        value = "a\ud800b"
        assert SecretText(value).reveal() == value

    def test_from_units(self):
        secret = SecretText.from_units(b"\x00h\x00i")
        assert secret.reveal() == "hi"

    def test_from_units_odd_length(self):
        with pytest.raises(ValueError):
            SecretText.from_units(b"\x00h\x00")

    def test_rejects_non_str(self):
        with pytest.raises(TypeError):
            SecretText(b"bytes")

    def test_copy_is_independent(self):
        original = SecretText("hunter2")
        duplicate = original.copy()
        original.wipe()
        assert original.is_wiped
        assert duplicate.reveal() == "hunter2"

    def test_wipe_zeroes_storage(self):
        secret = SecretText("hunter2")
        secret.wipe()
        assert secret._buffer._buffer == bytearray(14)
        with pytest.raises(ValueError):
            secret.reveal()

    def test_equality(self):
        assert SecretText("same") == SecretText("same")
        assert SecretText("same") != SecretText("diff")
        assert SecretText("same") != "same"

    def test_unhashable(self):
        with pytest.raises(TypeError):
            hash(SecretText("x"))

    def test_masked(self):
        secret = SecretText("hunter2")
        assert str(secret) == "********"
        assert "hunter2" not in repr(secret)

    def test_context_manager(self):
        with SecretText("x") as secret:
            assert secret.reveal() == "x"
        assert secret.is_wiped

    def test_reveal_reads_through_view(self, monkeypatch):
        def no_copies(self):
            raise AssertionError("SecureBuffer.data copies the secret")

        secret = SecretText("hunter2")
        monkeypatch.setattr(SecureBuffer, "data", property(no_copies))
        assert secret.reveal() == "hunter2"


# ── UTF-16 writer ───────────────────────────────────────────────────


class TestWriteUtf16:
    @pytest.mark.parametrize("text", ["", "Ab", "héllo", "\U0001F511 key", "a\ud800b", "\udfff"])
    def test_matches_codec(self, text):
        expected = text.encode("utf-16-be", "surrogatepass")
        buffer = bytearray(utf16_length(text) * 2)
        assert write_utf16(text, buffer) == len(expected)
        assert buffer == expected

    def test_writes_at_offset(self):
        buffer = bytearray(b"\xff" * 6)
        assert write_utf16("A", buffer, 2) == 4
        assert buffer == bytearray(b"\xff\xff\x00A\xff\xff")

    def test_buffer_too_small(self):
        with pytest.raises(struct.error):
            write_utf16("abc", bytearray(4))
