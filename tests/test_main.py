"""
API tests for the UBL Converter application
"""
import base64

import pytest


def convert_payload(credentials, document) -> dict:
    return {"document": document, **credentials}


def test_health_check(client):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "ubl-converter-api"
    assert data["version"] == "1.0.0"


def test_ping(client):
    response = client.get("/ping")
    assert response.status_code == 200
    assert response.json() == {"message": "pong"}


def test_api_root(client):
    """Test API root endpoint"""
    response = client.get("/api/v1/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "UBL Converter API v1"
    assert data["version"] == "1.0.0"


def test_docs_available(client):
    """Test that API documentation is available"""
    assert client.get("/docs").status_code == 200
    assert client.get("/api/v1/openapi.json").status_code == 200


class TestConvert:
    """POST /api/v1/convert"""

    def test_success(self, client, encoded_credentials, document_data):
        response = client.post(
            "/api/v1/convert",
            json=convert_payload(encoded_credentials, document_data),
            headers={"X-Request-ID": "req-123"}
        )

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"

        body = response.json()
        assert body["status"] == "SUCCESS"
        assert body["correlationId"] == "req-123"
        assert body["documentId"] == "20100070971-01-F001-123456"
        assert body["xmlPath"].endswith("20100070971-01-F001-123456.zip")
        assert len(body["xmlHash"]) == 64
        assert body["data"]["fileName"] == "20100070971-01-F001-123456.xml"
        assert body["data"]["fileSize"] > 0
        assert body["data"]["zipSize"] > 0
        assert body["message"] == "Document converted and signed successfully"
        assert "processedAt" in body
        assert "errorCode" not in body

    def test_generated_correlation_id(self, client, encoded_credentials, document_data):
        response = client.post("/api/v1/convert", json=convert_payload(encoded_credentials, document_data))
        assert response.status_code == 200
        assert response.json()["correlationId"] == response.headers["X-Request-ID"]

    def test_invalid_base64_certificate(self, client, encoded_credentials, document_data):
        credentials = dict(encoded_credentials, certificate="not base64!!")
        response = client.post("/api/v1/convert", json=convert_payload(credentials, document_data))

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == "ERROR"
        assert body["errorCode"] == "ERR_INVALID_CERTIFICATE"

    def test_invalid_base64_key(self, client, encoded_credentials, document_data):
        credentials = dict(encoded_credentials, privateKey="%%%")
        response = client.post("/api/v1/convert", json=convert_payload(credentials, document_data))
        assert response.status_code == 400
        assert response.json()["errorCode"] == "ERR_INVALID_PRIVATE_KEY"

    def test_pkcs1_key(self, client, encoded_credentials, pkcs1_key_pem, document_data):
        credentials = dict(encoded_credentials, privateKey=base64.b64encode(pkcs1_key_pem).decode("ascii"))
        response = client.post("/api/v1/convert", json=convert_payload(credentials, document_data))
        assert response.status_code == 200

    def test_ec_key(self, client, encoded_credentials, ec_key_pem, document_data):
        credentials = dict(encoded_credentials, privateKey=base64.b64encode(ec_key_pem).decode("ascii"))
        response = client.post("/api/v1/convert", json=convert_payload(credentials, document_data))

        assert response.status_code == 422
        assert response.json()["errorCode"] == "UNSUPPORTED_KEY_ALGORITHM"

    def test_business_validation_failure(self, client, encoded_credentials, document_data):
        document_data["currency"] = "GBP"
        response = client.post("/api/v1/convert", json=convert_payload(encoded_credentials, document_data))

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "VALIDATION_FAILED"
        assert body["validationErrors"] == [{
            "field": "currency",
            "expected": "Valid currency code (PEN, USD, EUR)",
            "received": "GBP",
            "rule": "currency_validation",
            "message": "Currency code is not valid"
        }]

    def test_credit_note_without_reference(self, client, encoded_credentials, document_data):
        document_data["type"] = "07"
        response = client.post("/api/v1/convert", json=convert_payload(encoded_credentials, document_data))

        assert response.status_code == 400
        assert [error["rule"] for error in response.json()["validationErrors"]] == ["reference_validation"]

    def test_number_with_path_separator(self, client, encoded_credentials, document_data):
        document_data["number"] = "1/../2"
        response = client.post("/api/v1/convert", json=convert_payload(encoded_credentials, document_data))

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "VALIDATION_FAILED"
        assert [error["rule"] for error in body["validationErrors"]] == ["number_validation"]

    def test_malformed_body(self, client, encoded_credentials):
        response = client.post("/api/v1/convert", json=dict(encoded_credentials))

        assert response.status_code == 400
        body = response.json()
        assert body["errorCode"] == "ERR_INVALID_REQUEST"
        assert body["validationErrors"][0]["field"] == "document"
        assert body["validationErrors"][0]["rule"] == "request_validation"


class TestValidate:
    """POST /api/v1/validate"""

    def test_valid_document(self, client, document_data):
        response = client.post("/api/v1/validate", json=document_data)
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "SUCCESS"
        assert body["data"] == {"message": "Document validation passed"}

    def test_invalid_document(self, client, document_data):
        document_data["totals"]["totalAmount"] = 200
        response = client.post("/api/v1/validate", json=document_data)

        assert response.status_code == 400
        body = response.json()
        assert body["errorMessage"] == "Document validation failed"
        assert body["validationErrors"][0]["rule"] == "sum_validation"


def test_status(client):
    response = client.get("/api/v1/status/abc-123")
    assert response.status_code == 200
    body = response.json()
    assert body["correlationId"] == "abc-123"
    assert body["status"] == "SUCCESS"


class TestXMLDownload:
    """GET /api/v1/xml/{filename}"""

    def test_download_converted_file(self, client, encoded_credentials, xml_store, document_data):
        converted = client.post("/api/v1/convert", json=convert_payload(encoded_credentials, document_data)).json()
        file_name = converted["data"]["fileName"]

        response = client.get(f"/api/v1/xml/{file_name}")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/xml"
        assert response.headers["content-disposition"] == f"attachment; filename={file_name}"
        assert response.content == (xml_store / file_name).read_bytes()

    def test_missing_file(self, client):
        response = client.get("/api/v1/xml/20100070971-01-F001-999.xml")
        assert response.status_code == 404
        assert response.json()["errorCode"] == "ERR_FILE_NOT_FOUND"

    @pytest.mark.parametrize("filename", ["document.txt", ".hidden.xml"])
    def test_invalid_filename(self, client, filename):
        response = client.get(f"/api/v1/xml/{filename}")
        assert response.status_code == 400
        assert response.json()["errorCode"] == "ERR_INVALID_FILENAME"


def test_unknown_route(client):
    response = client.get("/api/v1/unknown")
    assert response.status_code == 404
    body = response.json()
    assert body["status"] == "ERROR"
    assert body["errorCode"] == "ERR_NOT_FOUND"
    assert body["correlationId"] == response.headers["X-Request-ID"]
