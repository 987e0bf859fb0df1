"""
Tests for ZIP packaging
"""
import os
import zipfile

import pytest

from ubl_converter.utils.error_responses import PackagingFailed
from ubl_converter.utils.packaging import zip_path_for, zip_xml_file


def test_zip_path_for():
    assert zip_path_for("/data/20100070971-01-F001-1.xml") == "/data/20100070971-01-F001-1.zip"


def test_zip_contains_single_entry(tmp_path):
    xml_path = tmp_path / "20100070971-01-F001-1.xml"
    xml_path.write_bytes(b"<Invoice/>")

    zip_path = zip_xml_file(str(xml_path))

    assert zip_path == str(tmp_path / "20100070971-01-F001-1.zip")
    with zipfile.ZipFile(zip_path) as archive:
        assert archive.namelist() == ["20100070971-01-F001-1.xml"]
        assert archive.getinfo("20100070971-01-F001-1.xml").compress_type == zipfile.ZIP_DEFLATED
        assert archive.read("20100070971-01-F001-1.xml") == b"<Invoice/>"


def test_existing_zip_is_replaced(tmp_path):
    xml_path = tmp_path / "doc.xml"
    xml_path.write_bytes(b"<first/>")
    zip_xml_file(str(xml_path))

    xml_path.write_bytes(b"<second/>")
    zip_path = zip_xml_file(str(xml_path))

    with zipfile.ZipFile(zip_path) as archive:
        assert archive.read("doc.xml") == b"<second/>"


def test_missing_xml_file(tmp_path):
    xml_path = tmp_path / "missing.xml"
    with pytest.raises(PackagingFailed) as exc_info:
        zip_xml_file(str(xml_path))

    assert exc_info.value.error_code == "ZIP_FAILED"
    assert exc_info.value.context["path"] == os.path.join(str(tmp_path), "missing.zip")
    assert exc_info.value.is_retryable
