"""
Unit tests for errors/taxonomy.py
"""

from naascalc.errors import (
    CalculationError,
    CycleDetectedError,
    ErrorCategory,
    ErrorCode,
    ErrorInfo,
    InvalidUpdateError,
    ListenerError,
    NaasCalcError,
    UnknownComponentError,
    error_info_from_exception,
)


class TestExceptions:
    """Test exception classes."""

    def test_unknown_component(self):
        """Test unknown component message and classification."""
        err = UnknownComponentError("ghost", referenced_by="support")
        assert "ghost" in str(err)
        assert "support" in str(err)
        assert err.code == ErrorCode.DEP_UNKNOWN_COMPONENT
        assert err.category == ErrorCategory.DEPENDENCY
        assert isinstance(err, NaasCalcError)

    def test_cycle_detected(self):
        """Test cycle path is kept and rendered."""
        err = CycleDetectedError(["a", "b", "a"])
        assert err.cycle == ["a", "b", "a"]
        assert "a -> b -> a" in str(err)

    def test_calculation_error_info(self):
        """Test a calculation error becomes ErrorInfo."""
        err = CalculationError("capital", "bad device count", detail="devices=-1")
        info = err.to_error_info()

        assert info.code == ErrorCode.CALC_FAILED
        assert info.category == ErrorCategory.CALCULATION
        assert info.component_type == "capital"
        assert info.message == "bad device count"
        assert info.detail == "devices=-1"

    def test_calculation_error_with_dependency_code(self):
        """Test dependency codes are categorised as dependency errors."""
        err = CalculationError("support", "capital missing", code=ErrorCode.DEP_MISSING_RESULT)
        assert err.to_error_info().category == ErrorCategory.DEPENDENCY

    def test_listener_error(self):
        """Test listener errors name the listener."""
        def on_change(change):
            raise RuntimeError("render failed")

        err = ListenerError(on_change, RuntimeError("render failed"))
        assert "on_change" in str(err)
        assert "render failed" in str(err)
        assert err.code == ErrorCode.LSN_FAILED

    def test_invalid_update(self):
        """Test invalid update keeps field errors."""
        err = InvalidUpdateError("bad payload", errors=[{"loc": "x", "msg": "extra"}])
        assert err.errors[0]["loc"] == "x"
        assert err.category == ErrorCategory.VALIDATION
        assert InvalidUpdateError("bad").errors == []


class TestErrorInfo:
    """Test ErrorInfo dataclass."""

    def test_from_generic_exception(self):
        """Test ErrorInfo from an arbitrary exception."""
        info = error_info_from_exception("prtg", ValueError("sensor count must be positive"))
        assert info.code == ErrorCode.CALC_FAILED
        assert info.component_type == "prtg"
        assert info.message == "sensor count must be positive"
        assert info.detail == "ValueError"

    def test_from_exception_without_message(self):
        """Test the class name is used when there is no message."""
        info = error_info_from_exception("prtg", KeyError())
        assert info.message == "KeyError"

    def test_from_naascalc_error(self):
        """Test core exceptions keep their own classification."""
        info = error_info_from_exception("support", UnknownComponentError("ghost"))
        assert info.code == ErrorCode.DEP_UNKNOWN_COMPONENT
        assert info.component_type == "support"

    def test_to_dict(self):
        """Test serialization."""
        data = ErrorInfo(message="boom", component_type="capital").to_dict()
        assert data["code"] == 2001
        assert data["category"] == "calculation"
        assert data["message"] == "boom"
        assert data["recoverable"] is True
        assert "created_at" in data
