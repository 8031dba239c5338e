# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""
Telemetry exceptions.
"""


class TelemetryError(Exception):
    """
    Base exception for telemetry errors.
    """

    pass


class TelemetryConfigurationError(TelemetryError):
    """
    Raised when telemetry settings cannot be used.
    """

    def __init__(self, setting: str, reason: str) -> None:
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid telemetry setting {setting}: {reason}")
