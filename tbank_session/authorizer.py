"""
Confirmation Code Authorizers

A login flow that hits a multi-factor challenge asks an Authorizer for the
confirmation code sent to the user. The authorizer is handed to the flow by the
caller, so automated runs and tests can substitute their own implementation.
"""

from abc import ABC, abstractmethod
from typing import Optional, TextIO
import sys

from .errors import ConfirmationInputError
from .logging_config import get_logger, log_action
from .models import Identity


logger = get_logger("tbank.auth")

# Surrounding characters stripped from a typed code: whitespace and C0/DEL controls
TRIM_CHARS = "".join(chr(c) for c in range(0x20)) + " \x7f"


class Authorizer(ABC):
    """Supplies confirmation codes to an in-progress login"""

    @abstractmethod
    def get_confirmation_code(self, identity: Identity) -> str:
        """
        Obtain the confirmation code for an identity.

        Args:
            identity: Identity (phone number) being logged in

        Returns:
            Confirmation code

        Raises:
            ConfirmationInputError: If the code cannot be obtained
        """
        pass


class ConsoleAuthorizer(Authorizer):
    """Prompts on the console and reads one line per confirmation request"""

    def __init__(self, input_stream: Optional[TextIO] = None,
                 output_stream: Optional[TextIO] = None):
        # None means sys.stdin / sys.stdout as they are at prompt time
        self.input_stream = input_stream
        self.output_stream = output_stream

    def get_confirmation_code(self, identity: Identity) -> str:
        input_stream = self.input_stream if self.input_stream is not None else sys.stdin
        output_stream = self.output_stream if self.output_stream is not None else sys.stdout

        log_action(logger, "info", "Waiting for confirmation code",
                   identity=identity, action="confirmation_prompt")

        try:
            output_stream.write(f"Enter confirmation code for {identity}: ")
            output_stream.flush()
            line = input_stream.readline()
        except (OSError, ValueError) as e:
            # ValueError covers reads from a closed stream
            raise ConfirmationInputError("read line from stdin", str(e)) from e

        if not line:
            raise ConfirmationInputError("read line from stdin", "input closed")

        return line.strip(TRIM_CHARS)


class StaticAuthorizer(Authorizer):
    """Returns a preconfigured code; for automation and tests"""

    def __init__(self, code: str):
        self.code = code
        self.requests = []

    def get_confirmation_code(self, identity: Identity) -> str:
        self.requests.append(identity)
        return self.code
