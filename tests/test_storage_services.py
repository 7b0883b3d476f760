from unittest.mock import MagicMock, patch

import pytest

from app.services.storage import StorageService


def _configure(mock_settings):
    mock_settings.s3_endpoint_url = "http://localhost:9000"
    mock_settings.s3_access_key = "test-key"
    mock_settings.s3_secret_key = "test-secret"
    mock_settings.s3_region = "us-east-1"
    mock_settings.s3_bucket_name = "documents"
    mock_settings.s3_presigned_url_expiry = 3600


class TestStorageService:
    def test_generate_storage_key_format(self):
        key = StorageService.generate_storage_key("user-123", "will.pdf")
        assert key.startswith("user-123/")
        assert key.endswith("/will.pdf")

    def test_is_configured_false_by_default(self):
        assert StorageService.is_configured() is False

    def test_client_requires_configuration(self):
        with pytest.raises(RuntimeError):
            StorageService.generate_signed_url("key/will.pdf")

    @patch("app.services.storage.settings")
    def test_is_configured_true(self, mock_settings):
        _configure(mock_settings)
        assert StorageService.is_configured() is True

    @patch("app.services.storage.boto3")
    @patch("app.services.storage.settings")
    def test_generate_upload_url(self, mock_settings, mock_boto3):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client.generate_presigned_url.return_value = "https://example.com/upload"
        mock_boto3.client.return_value = mock_client

        url = StorageService.generate_upload_url("key/will.pdf", "application/pdf")
        assert url == "https://example.com/upload"
        args, kwargs = mock_client.generate_presigned_url.call_args
        assert args[0] == "put_object"
        assert kwargs["Params"]["ContentType"] == "application/pdf"

    @patch("app.services.storage.boto3")
    @patch("app.services.storage.settings")
    def test_signed_view_url_is_inline(self, mock_settings, mock_boto3):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_client.generate_presigned_url.return_value = "https://example.com/view"
        mock_boto3.client.return_value = mock_client

        url = StorageService.generate_signed_url("key/will.pdf", file_name="will.pdf")
        assert url == "https://example.com/view"
        _, kwargs = mock_client.generate_presigned_url.call_args
        assert "ResponseContentDisposition" not in kwargs["Params"]
        assert kwargs["ExpiresIn"] == 3600

    @patch("app.services.storage.boto3")
    @patch("app.services.storage.settings")
    def test_signed_download_url_is_attachment(self, mock_settings, mock_boto3):
        _configure(mock_settings)
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client

        StorageService.generate_signed_url(
            "key/will.pdf", file_name="will.pdf", as_attachment=True
        )
        _, kwargs = mock_client.generate_presigned_url.call_args
        assert (
            kwargs["Params"]["ResponseContentDisposition"]
            == 'attachment; filename="will.pdf"'
        )
