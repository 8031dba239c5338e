# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
Lifecycle checkpoint labels.

Every label starts with "<application name> Process" so one query filter
finds all lifecycle events of an application.
"""

from __future__ import annotations
from enum import Enum
from src.core.observability.context import ApplicationContext


class Checkpoint(str, Enum):
    """Lifecycle checkpoints of a traced unit of work."""

    START = "Start"
    WARNING = "Warning"
    SUCCESS = "Success"
    EXCEPTION = "Exception"
    FILTER = "Filter"


class MessageCatalog:
    """
    Builds application-prefixed labels for lifecycle checkpoints.

    The application name is read from the injected context on every call.
    """

    def __init__(self, context: ApplicationContext) -> None:
        self._context = context

    @property
    def application_name(self) -> str:
        """Application name currently used as label prefix."""
        return self._context.application_name

    def prefix(self, checkpoint: Checkpoint) -> str:
        """Get the label prefix for a checkpoint.

        :param checkpoint: Lifecycle checkpoint
        :type checkpoint: Checkpoint
        :returns: Label without process name
        :rtype: str
        """
        checkpoint = Checkpoint(checkpoint)
        base = f"{self._context.application_name} Process"
        if checkpoint is Checkpoint.FILTER:
            return base
        if checkpoint is Checkpoint.EXCEPTION:
            return f"{base} Exception:"
        return f"{base} {checkpoint.value}: "

    def label(self, checkpoint: Checkpoint, process_name: str) -> str:
        """Build the label for a checkpoint of a named process.

        :param checkpoint: Lifecycle checkpoint
        :type checkpoint: Checkpoint
        :param process_name: Name of the traced operation
        :type process_name: str
        :returns: Label string
        :rtype: str
        """
        if Checkpoint(checkpoint) is Checkpoint.FILTER:
            return self.prefix(Checkpoint.FILTER)
        return f"{self.prefix(checkpoint)}{process_name}"
