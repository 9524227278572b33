import pytest

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_email_masked(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "customer_email": "lena.park@example.com"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "lena.park@example.com" not in result["customer_email"]
        assert "***MASKED***" in result["customer_email"]

    @pytest.mark.parametrize("phone", ["0901234567", "+84 901 234 567", "090-123-4567"])
    def test_phone_masked(self, phone):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "test", "message": f"call {phone} on delivery"}
        result = mask_sensitive_data(None, None, event_dict)
        assert phone not in result["message"]
        assert "***MASKED***" in result["message"]

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

    def test_order_code_is_not_mistaken_for_phone(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.created", "order_code": "ORD20250101001"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_code"] == "ORD20250101001"

    def test_non_sensitive_data_unchanged(self):
        from config.settings import mask_sensitive_data

        event_dict = {"event": "order.created", "order_id": "ORD-001", "units": 3}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["order_id"] == "ORD-001"
        assert result["event"] == "order.created"
        assert result["units"] == 3
