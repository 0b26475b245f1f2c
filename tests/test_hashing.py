from __future__ import annotations

import hashlib

import pytest

from mirrorsync.hashing import ContentVerifier, CopyVerificationError, IOUnavailable


def test_digest_matches_md5_across_chunk_boundaries(tmp_path):
    data = bytes(range(256)) * 50
    path = tmp_path / "data.bin"
    path.write_bytes(data)

    digest = ContentVerifier(chunk_size=1000).digest(path)

    assert digest.lower() == hashlib.md5(data).hexdigest()
    assert len(digest) == 32


def test_equal_and_different_files(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    c = tmp_path / "c"
    a.write_bytes(b"same")
    b.write_bytes(b"same")
    c.write_bytes(b"diff")
    verifier = ContentVerifier()

    assert verifier.equal(a, b)
    assert not verifier.equal(a, c)


def test_empty_file_digest(tmp_path):
    path = tmp_path / "empty"
    path.write_bytes(b"")
    assert ContentVerifier().digest(path).lower() == hashlib.md5(b"").hexdigest()


def test_missing_file_raises_io_unavailable(tmp_path):
    with pytest.raises(IOUnavailable):
        ContentVerifier().digest(tmp_path / "missing")


def test_directory_raises_io_unavailable(tmp_path):
    with pytest.raises(IOUnavailable):
        ContentVerifier().digest(tmp_path)


def test_validate_copy_reports_relative_path(tmp_path):
    a = tmp_path / "a"
    b = tmp_path / "b"
    a.write_bytes(b"one")
    b.write_bytes(b"two")

    with pytest.raises(CopyVerificationError, match="MD5 mismatch after copy: sub/a"):
        ContentVerifier().validate_copy(a, b, "sub/a")


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        ContentVerifier(chunk_size=0)
