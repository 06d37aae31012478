"""Tests for payslip storage naming and the S3 adapter."""

import boto3
import pytest
from botocore.stub import Stubber

from payroll_admin.storage import S3PayslipStorage, payslip_filename, slugify_name


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


class TestPayslipFilename:
    """Test deterministic object names."""

    def test_slug_replaces_non_alphanumerics(self):
        assert payslip_filename("Jane O'Doe-Smith", "tok-1") == "Jane_O_Doe_Smith_tok-1.pdf"

    def test_empty_name_is_unknown(self):
        assert payslip_filename("", "abc") == "unknown_abc.pdf"
        assert payslip_filename(None, "abc") == "unknown_abc.pdf"
        assert slugify_name("   ") == "unknown"

    def test_slug_truncated(self):
        assert len(slugify_name("x" * 200)) == 64

    def test_same_token_same_path(self):
        """The token is the only source of uniqueness."""
        assert payslip_filename("Jane Doe", "t1") == payslip_filename("Jane Doe", "t1")
        assert payslip_filename("Jane Doe", "t1") != payslip_filename("Jane Doe", "t2")


class TestS3PayslipStorage:
    """Test uploads against a stubbed S3 client."""

    def test_upload_puts_object_and_returns_url(self, s3_client):
        storage = S3PayslipStorage(s3_client, bucket="Payroll", region="us-east-1")
        with Stubber(s3_client) as stubber:
            stubber.add_response(
                "put_object",
                {},
                expected_params={
                    "Bucket": "Payroll",
                    "Key": "Jane_Doe_t1.pdf",
                    "Body": b"%PDF-1.4",
                    "ContentType": "application/pdf",
                },
            )
            result = storage.upload("Jane_Doe_t1.pdf", b"%PDF-1.4")
            stubber.assert_no_pending_responses()

        assert result.ok is True
        assert result.url == "https://Payroll.s3.us-east-1.amazonaws.com/Jane_Doe_t1.pdf"

    def test_upload_error_is_returned_not_raised(self, s3_client):
        storage = S3PayslipStorage(s3_client, bucket="Payroll")
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "put_object",
                service_error_code="AccessDenied",
                service_message="Access Denied",
                http_status_code=403,
            )
            result = storage.upload("Jane_Doe_t1.pdf", b"%PDF-1.4")

        assert result.ok is False
        assert result.url is None
        assert "AccessDenied" in result.error

    def test_check_reachable_bucket(self, s3_client):
        storage = S3PayslipStorage(s3_client, bucket="Payroll")
        with Stubber(s3_client) as stubber:
            stubber.add_response("head_bucket", {}, {"Bucket": "Payroll"})
            assert storage.check() is None

    def test_check_reports_missing_bucket(self, s3_client):
        storage = S3PayslipStorage(s3_client, bucket="Payroll")
        with Stubber(s3_client) as stubber:
            stubber.add_client_error(
                "head_bucket", service_error_code="404", http_status_code=404
            )
            error = storage.check()

        assert error is not None
        assert "404" in error

    def test_public_url_prefers_configured_base(self, s3_client):
        storage = S3PayslipStorage(
            s3_client,
            bucket="Payroll",
            endpoint_url="http://minio:9000",
            public_base_url="https://files.example.com/storage/v1/object/public/",
        )
        assert (
            storage.public_url("Jane Doe_t1.pdf")
            == "https://files.example.com/storage/v1/object/public/Payroll/Jane%20Doe_t1.pdf"
        )

    def test_public_url_uses_endpoint(self, s3_client):
        storage = S3PayslipStorage(s3_client, bucket="Payroll", endpoint_url="http://minio:9000/")
        assert storage.public_url("a.pdf") == "http://minio:9000/Payroll/a.pdf"

    def test_from_settings(self, settings):
        storage = S3PayslipStorage.from_settings(settings)
        assert storage.bucket == "Payroll"
        assert storage.region == "us-east-1"
