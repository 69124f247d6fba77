"""
Tests for ServiceResult and BaseService.
"""

import logging

from core.exceptions import NotFoundError, ValidationError
from core.services import BaseService, ServiceResult


class TestServiceResult:
    def test_success_is_truthy(self):
        result = ServiceResult.success({"id": 1})

        assert result
        assert result.data == {"id": 1}
        assert result.to_response() == {"success": True, "data": {"id": 1}}

    def test_failure_is_falsy_and_carries_code(self):
        result = ServiceResult.failure(
            "No payment channel available",
            error_code="NO_AVAILABLE_ACCOUNT",
        )

        assert not result
        assert result.to_response() == {
            "success": False,
            "error": "No payment channel available",
            "error_code": "NO_AVAILABLE_ACCOUNT",
        }

    def test_failure_includes_field_errors(self):
        result = ServiceResult.failure(
            "Bad input",
            error_code="VALIDATION_ERROR",
            errors={"amount": ["Must be greater than zero"]},
        )

        assert result.to_response()["errors"] == {"amount": ["Must be greater than zero"]}

    def test_from_application_exception_keeps_error_code(self):
        exc = NotFoundError("Order 1 not found", error_code="ENTITY_NOT_FOUND")

        result = ServiceResult.from_exception(exc)

        assert result.error == "Order 1 not found"
        assert result.error_code == "ENTITY_NOT_FOUND"

    def test_from_plain_exception_uses_class_name(self):
        result = ServiceResult.from_exception(KeyError("x"))

        assert result.error_code == "KEYERROR"


class TestBaseService:
    def test_handle_exception_logs_and_converts(self, caplog):
        class SampleService(BaseService):
            pass

        with caplog.at_level(logging.INFO):
            result = SampleService.handle_exception(
                ValidationError("Amount must be positive"),
                "record_usage",
                log_level=logging.INFO,
            )

        assert result.error_code == "VALIDATION_ERROR"
        assert "record_usage" in caplog.text
