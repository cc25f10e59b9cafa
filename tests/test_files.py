import io
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from discovery_mcp.files import FilePart, UploadKind, classify, ensure_filename, upload_details

RESOURCES = os.path.join(os.path.dirname(__file__), "resources")


def test_passes_through_files_opened_from_disk():
    with open(os.path.join(RESOURCES, "sample.html"), "rb") as handle:
        assert classify(handle) is UploadKind.NATIVE_FILE
        assert ensure_filename(handle) is handle


def test_passes_through_file_parts_with_a_filename():
    src = FilePart(value="foo", filename="foo.bar")
    actual = ensure_filename(src)
    assert actual is src
    assert actual == FilePart(value="foo", filename="foo.bar")


def test_is_idempotent_on_normalized_parts():
    once = ensure_filename(b"\x01\x02")
    assert ensure_filename(once) is once


def test_adds_placeholder_filename_without_touching_input():
    src = FilePart(value='{"foo": "bar"}', content_type="application/json")
    actual = ensure_filename(src)
    assert actual == FilePart(value='{"foo": "bar"}', filename="_", content_type="application/json")
    assert actual is not src
    assert src.filename is None


def test_value_options_mapping_gets_placeholder_filename():
    src = {"value": '{"foo": "bar"}', "options": {"contentType": "application/json"}}
    actual = ensure_filename(src)
    assert actual == {"value": '{"foo": "bar"}', "options": {"contentType": "application/json", "filename": "_"}}
    assert actual is not src
    assert actual["options"] is not src["options"]
    assert src == {"value": '{"foo": "bar"}', "options": {"contentType": "application/json"}}


def test_value_options_mapping_with_filename_passes_through():
    src = {"value": "foo", "options": {"filename": "foo.bar"}}
    actual = ensure_filename(src)
    assert actual is src
    assert actual == {"value": "foo", "options": {"filename": "foo.bar"}}


def test_value_options_mapping_keeps_every_option():
    src = {"value": "x", "options": {"contentType": "application/json", "knownLength": 1}}
    actual = ensure_filename(src)
    assert actual["options"] == {"contentType": "application/json", "knownLength": 1, "filename": "_"}
    assert "filename" not in src["options"]


def test_value_mapping_without_options():
    assert ensure_filename({"value": b"data"}) == {"value": b"data", "options": {"filename": "_"}}


def test_rejects_options_that_are_not_mappings():
    with pytest.raises(TypeError):
        ensure_filename({"value": "x", "options": "doc.pdf"})


def test_upload_details_reads_every_shape():
    assert upload_details(FilePart(value=b"a", filename="a.txt", content_type="text/plain")) == (
        b"a",
        "a.txt",
        "text/plain",
    )
    assert upload_details({"value": b"b", "options": {"filename": "b.json", "contentType": "application/json"}}) == (
        b"b",
        "b.json",
        "application/json",
    )
    stream = io.BytesIO(b"c")
    assert upload_details(stream) == (stream, None, None)


def test_wraps_bytes():
    src = bytes([1, 2, 3, 4])
    actual = ensure_filename(src)
    assert actual == FilePart(value=src, filename="_")
    assert actual.value is src


def test_wraps_strings():
    assert ensure_filename("foo") == FilePart(value="foo", filename="_")


def test_wraps_anonymous_streams():
    src = io.BytesIO(b"stream")
    actual = ensure_filename(src)
    assert isinstance(actual, FilePart)
    assert actual.value is src
    assert actual.filename == "_"
    assert src.tell() == 0


def test_rejects_unsupported_values():
    with pytest.raises(TypeError):
        ensure_filename(42)
