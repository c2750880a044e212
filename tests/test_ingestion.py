import pytest

from sfss.objects.errors import EmptyPayloadError, PayloadTooLargeError
from sfss.objects.fingerprint import fingerprint
from sfss.objects.ingestion import infer_content_type, is_well_formed_content_type

from conftest import MAX_UPLOAD_BYTES


def test_ingest_returns_fingerprint_code(memory_store):
    result = memory_store.ingest(b"hello world")
    assert result.code == fingerprint(b"hello world")
    assert result.created is True
    assert result.password_active is False


def test_ingest_is_idempotent(store):
    first = store.ingest(b"same content")
    second = store.ingest(b"same content")
    assert first.code == second.code
    assert second.created is False


def test_empty_upload_rejected_before_storage(memory_store, memory_storage):
    with pytest.raises(EmptyPayloadError):
        memory_store.ingest(b"")
    assert memory_storage.keys() == []


def test_oversize_upload_rejected_before_storage(memory_store, memory_storage):
    with pytest.raises(PayloadTooLargeError) as exc_info:
        memory_store.ingest(b"x" * (MAX_UPLOAD_BYTES + 1))
    assert exc_info.value.limit == MAX_UPLOAD_BYTES
    assert exc_info.value.status_code == 413
    assert memory_storage.keys() == []


def test_upload_at_limit_is_accepted(memory_store):
    assert memory_store.ingest(b"x" * MAX_UPLOAD_BYTES).created is True


def test_password_is_stored_hashed(memory_store):
    result = memory_store.ingest(b"secret notes", password="p")
    assert result.password_active is True
    assert result.object.password != "p"
    assert memory_store.repository.get(result.code).password == result.object.password


def test_empty_password_means_unprotected(memory_store):
    assert memory_store.ingest(b"open notes", password="").password_active is False


def test_first_uploader_password_wins(memory_store):
    first = memory_store.ingest(b"shared", password="first")
    second = memory_store.ingest(b"shared", password="second")

    assert second.created is False
    assert second.object.password == first.object.password
    assert memory_store.resolve(second.code, "second").status == "forbidden"
    assert memory_store.resolve(second.code, "first").status == "found"


def test_later_password_does_not_protect_open_content(memory_store):
    memory_store.ingest(b"open first")
    again = memory_store.ingest(b"open first", password="late")
    assert again.password_active is False


def test_code_ignores_metadata(memory_store, local_store):
    a = memory_store.ingest(b"payload", password="x", content_type="text/markdown")
    b = local_store.ingest(b"payload")
    assert a.code == b.code


@pytest.mark.parametrize(
    "value,expected",
    [
        ("text/plain", True),
        ("application/json; charset=utf-8", True),
        ('text/plain; charset="utf-8"', True),
        ("image/svg+xml", True),
        ("text", False),
        ("", False),
        (None, False),
        ("text/plain\r\nX-Injected: 1", False),
        ("a/b; c", False),
    ],
)
def test_is_well_formed_content_type(value, expected):
    assert is_well_formed_content_type(value) is expected


def test_declared_content_type_wins():
    assert infer_content_type(b"{}", "application/json") == "application/json"


def test_malformed_declared_type_falls_back_to_inference():
    assert infer_content_type(b"plain words", "not a type") == "text/plain; charset=utf-8"


def test_inference_from_filename():
    assert infer_content_type(b"\x89PNG\r\n", None, "cat.png") == "image/png"
    assert infer_content_type(b"body { }", None, "site.css") == "text/css; charset=utf-8"


def test_inference_binary_and_text():
    assert infer_content_type(b"\x00\x01\x02") == "application/octet-stream"
    assert infer_content_type(b"\xff\xfe\xfd") == "application/octet-stream"
    assert infer_content_type("héllo".encode("utf-8")) == "text/plain; charset=utf-8"


def test_stored_content_type_follows_declaration(memory_store):
    result = memory_store.ingest(b"# title", content_type="text/markdown")
    assert result.object.content_type == "text/markdown"
    assert memory_store.repository.get(result.code).content_type == "text/markdown"
