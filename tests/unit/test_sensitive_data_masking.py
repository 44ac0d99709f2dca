import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_contact_phone_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.placed", "contact_phone": "+1 555 0100"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["contact_phone"] == "***MASKED***"

    def test_refresh_token_key_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "auth", "refresh": "eyJhbGciOi.payload.sig"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "eyJhbGciOi" not in result["refresh"]

    def test_password_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.placed", "order_number": "ORD-20260101-ABCDEF"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_number"] == "ORD-20260101-ABCDEF"
        assert result["event"] == "order.placed"
