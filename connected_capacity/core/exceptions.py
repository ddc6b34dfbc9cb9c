"""
Custom Exceptions - Connected Capacity Bundle Engine
connected_capacity/core/exceptions.py

Custom exception classes for rule loading, rule evaluation and scheduling.
"""


class BundleEngineException(Exception):
    """Base exception for bundle engine operations."""

    pass


class RuleNotFoundException(BundleEngineException):
    """Rule definition file not found."""

    def __init__(self, rule_type: str, name: str):
        self.rule_type = rule_type
        self.name = name
        super().__init__(f"{rule_type} '{name}' not found")


class RuleValidationException(BundleEngineException):
    """Rule definition is structurally invalid."""

    def __init__(self, rule_type: str, name: str, reason: str):
        self.rule_type = rule_type
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid {rule_type} '{name}': {reason}")


class ExpressionException(BundleEngineException):
    """Decision tree expression cannot be evaluated."""

    def __init__(self, expression: str, reason: str = "malformed expression"):
        self.expression = expression
        self.reason = reason
        super().__init__(f"{reason}: {expression!r}")


class InsufficientAssessmentDataException(BundleEngineException):
    """Profile lacks the assessment data needed for bundling."""

    def __init__(self, patient_id: str, message: str = "Insufficient assessment data for bundling"):
        self.patient_id = patient_id
        self.message = message
        super().__init__(f"{message} (patient {patient_id})")


class SchedulingException(Exception):
    """Base exception for scheduling operations."""

    def __init__(self, message: str = "Scheduling operation failed"):
        self.message = message
        super().__init__(message)
