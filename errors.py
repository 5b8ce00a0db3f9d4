#!/usr/bin/env python3


class ImpactDataError(AssertionError):
    """Bad input data. Never recovered from inside the engine."""


class MissingField(ImpactDataError):
    pass


class TypeMismatch(ImpactDataError):
    pass


class DomainViolation(ImpactDataError):
    pass


class ReferentialIntegrityViolation(ImpactDataError):
    pass


class SilentFailurePrevented(ImpactDataError):
    def __init__(self, message):
        super().__init__("SILENT FAILURE PREVENTED: " + message)


class StartupValidationError(ImpactDataError):
    """Every violation found by one pass over a dataset, joined into one message."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(
            "STARTUP VALIDATION FAILED: " + "; ".join(str(e) for e in self.errors)
        )
