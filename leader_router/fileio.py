"""Artifact file helpers"""
import hashlib
import os
import tempfile
from pathlib import Path
from typing import Union

HASH_CHUNK_SIZE = 8192


def atomic_write_bytes(path: Union[str, Path], data: bytes):
    """
    Write data to path so readers only ever see the old or the new content.

    The bytes go to a temp file in the destination directory, are fsynced,
    then renamed over path. The temp file is removed if anything fails.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def sha256_file_hex(path: Union[str, Path]) -> str:
    """Streaming SHA-256 of a file, hex encoded"""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()
