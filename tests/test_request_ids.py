import uuid

from smartbucket_cli import request_ids


def test_new_request_id_is_uuid4():
    value = request_ids.new_request_id()
    assert uuid.UUID(value).version == 4
    assert value != request_ids.new_request_id()


def test_normalize_request_id_trims_whitespace():
    assert request_ids.normalize_request_id("  abc-123 \n") == "abc-123"
    assert request_ids.normalize_request_id(" abc \t 123 ") == "abc 123"
    assert request_ids.normalize_request_id("") == ""
    assert request_ids.normalize_request_id(None) == ""


def test_request_id_or_new_keeps_supplied_value():
    assert request_ids.request_id_or_new(" req-1 ") == ("req-1", False)


def test_request_id_or_new_generates_for_blank(monkeypatch):
    monkeypatch.setattr(request_ids, "new_request_id", lambda: "generated-id")
    assert request_ids.request_id_or_new("   ") == ("generated-id", True)
