"""
Unit tests for kernel/engine.py
"""

import pytest

from naascalc.core.models import ProjectMetadata
from naascalc.errors import CalculationError, ErrorCode
from naascalc.kernel.engine import CalculationContext, CalculationEngine, CalculatorRegistry


class TestCalculationContext:
    """Test CalculationContext dataclass."""

    def test_defaults(self):
        """Test an empty context."""
        ctx = CalculationContext(component_type="capital")
        assert ctx.dependency_results == {}
        assert ctx.enabled_types == frozenset()
        assert ctx.project == ProjectMetadata()

    def test_get_result(self):
        """Test reading a dependency result."""
        ctx = CalculationContext(component_type="support", dependency_results={"capital": 10})
        assert ctx.get_result("capital") == 10
        assert ctx.get_result("prtg", default=0) == 0


class TestCalculationEngine:
    """Test the engine base class."""

    def test_compute_not_implemented(self):
        """Test the base class must be subclassed."""
        with pytest.raises(NotImplementedError):
            CalculationEngine().compute("capital", {}, CalculationContext(component_type="capital"))


class TestCalculatorRegistry:
    """Test CalculatorRegistry dispatch."""

    def test_register_and_compute(self):
        """Test dispatch to the registered calculator."""
        registry = CalculatorRegistry()
        registry.register("capital", lambda params, ctx: params["devices"] * 100)

        ctx = CalculationContext(component_type="capital")
        assert registry.compute("capital", {"devices": 3}, ctx) == 300
        assert registry.has_calculator("capital")
        assert registry.list_calculators() == ["capital"]

    def test_calculator_receives_context(self):
        """Test dependency results reach the calculator."""
        registry = CalculatorRegistry()
        registry.register("support", lambda params, ctx: ctx.get_result("capital") * 0.1)

        ctx = CalculationContext(component_type="support", dependency_results={"capital": 500})
        assert registry.compute("support", {}, ctx) == pytest.approx(50.0)

    def test_missing_calculator(self):
        """Test computing an unregistered type."""
        registry = CalculatorRegistry()
        with pytest.raises(CalculationError) as exc_info:
            registry.compute("prtg", {}, CalculationContext(component_type="prtg"))
        assert exc_info.value.code == ErrorCode.CALC_NO_CALCULATOR

    def test_none_result_rejected(self):
        """Test a calculator returning nothing is a failure."""
        registry = CalculatorRegistry()
        registry.register("prtg", lambda params, ctx: None)
        with pytest.raises(CalculationError) as exc_info:
            registry.compute("prtg", {}, CalculationContext(component_type="prtg"))
        assert exc_info.value.code == ErrorCode.CALC_INVALID_RESULT

    def test_calculator_exception_propagates(self):
        """Test calculator errors reach the caller."""
        registry = CalculatorRegistry()

        def broken(params, ctx):
            raise ZeroDivisionError("division by zero")

        registry.register("prtg", broken)
        with pytest.raises(ZeroDivisionError):
            registry.compute("prtg", {}, CalculationContext(component_type="prtg"))

    def test_unregister(self):
        """Test removing a calculator."""
        registry = CalculatorRegistry()
        registry.register("prtg", lambda params, ctx: 1)
        assert registry.unregister("prtg") is True
        assert registry.unregister("prtg") is False
        assert not registry.has_calculator("prtg")
