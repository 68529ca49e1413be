"""
Custom exception hierarchy for the hydrocell package.
Provides clear error categories and rich error information.
"""
from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Context information for errors"""
    cell_id: Optional[str] = None
    layer: Optional[int] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class HydroCellError(Exception):
    """Base exception for all hydrocell errors"""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        context_str = ""
        if self.context.cell_id:
            context_str += f" [Cell: {self.context.cell_id}]"
        if self.context.layer is not None:
            context_str += f" [Layer: {self.context.layer}]"
        if self.context.component:
            context_str += f" [Component: {self.context.component}]"
        if self.context.operation:
            context_str += f" [Operation: {self.context.operation}]"

        return f"{self.__class__.__name__}: {self.message}{context_str}"


# Configuration errors
class ConfigurationError(HydroCellError):
    """Configuration error"""
    pass


class SoilColumnConfigurationError(ConfigurationError):
    """Soil column arrays or static properties are inconsistent"""
    pass


# Physics model errors
class PhysicsModelError(HydroCellError):
    """Base class for physics model errors"""
    pass


class ParameterError(PhysicsModelError):
    """Invalid forcing or step parameters"""
    pass


class WaterBalanceError(PhysicsModelError):
    """Water balance violation"""
    pass


class SaturatedFlowDeficitError(WaterBalanceError):
    """Lateral outflow demanded more water than the saturated zone holds"""

    def __init__(
        self,
        message: str,
        deficit: float,
        context: Optional[ErrorContext] = None
    ):
        super().__init__(message, context)
        self.deficit = deficit


def handle_exception(exc: Exception, context: Optional[ErrorContext] = None) -> HydroCellError:
    """
    Wrap generic exceptions in HydroCellError hierarchy.
    Useful for catching and categorizing numpy / third-party exceptions.
    """
    if isinstance(exc, HydroCellError):
        return exc

    error_map = {
        ValueError: ParameterError,
        TypeError: ParameterError,
        IndexError: SoilColumnConfigurationError,
        ZeroDivisionError: PhysicsModelError,
        FloatingPointError: PhysicsModelError,
        ArithmeticError: PhysicsModelError,
    }

    for exc_type, hydrocell_exc_type in error_map.items():
        if isinstance(exc, exc_type):
            return hydrocell_exc_type(str(exc), context)

    return HydroCellError(str(exc), context)
