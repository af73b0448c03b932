import pytest

from app.archope.storage import LocalStorage, StorageError, StorageNotFound, normalize_key, storage_from_config


def test_normalize_key_cleans_and_refuses_escapes():
    assert normalize_key("/blog//2024/./a.jpg") == "blog/2024/a.jpg"
    assert normalize_key("sponsors\\logo.png") == "sponsors/logo.png"
    for bad in ("", "/", "../secret", "blog/../../etc/passwd"):
        with pytest.raises(StorageError):
            normalize_key(bad)


def test_local_storage_round_trip(tmp_path):
    storage = LocalStorage(root=tmp_path)
    storage.put_bytes("testimonials/a.png", b"img")
    fobj, content_type = storage.open("testimonials/a.png")
    with fobj:
        assert fobj.read() == b"img"
    assert content_type == "image/png"

    with pytest.raises(StorageNotFound):
        storage.open("testimonials/missing.png")


def test_storage_from_config_local_dir(tmp_path):
    storage = storage_from_config({"STORAGE_BACKEND": "local", "STORAGE_DIR": str(tmp_path / "uploads")})
    assert isinstance(storage, LocalStorage)
    assert storage.root == tmp_path / "uploads"
